from tnetctl.args import MASK, mask_args, mask_text, secret_values


class TestMaskArgs:
    def test_replaces_crypt_key_token(self) -> None:
        assert mask_args(["--tunnel-listen=:1", "--crypt-key=abc"]) == [
            "--tunnel-listen=:1",
            "--crypt-key=**********",
        ]

    def test_empty_crypt_key_is_masked(self) -> None:
        assert mask_args(["--crypt-key="]) == ["--crypt-key=**********"]

    def test_other_tokens_unchanged(self) -> None:
        args = ["--listen=:1", "-k", "abc", "x--crypt-key=abc"]

        assert mask_args(args) == args

    def test_masks_every_occurrence(self) -> None:
        assert mask_args(["--crypt-key=a", "--crypt-key=b"]) == [
            "--crypt-key=**********",
            "--crypt-key=**********",
        ]

    def test_accepts_tuples(self) -> None:
        assert mask_args(("--crypt-key=a",)) == ["--crypt-key=**********"]


class TestSecretValues:
    def test_collects_non_empty_values(self) -> None:
        assert secret_values(["--crypt-key=", "--crypt-key=abc", "--x=1"]) == ["abc"]


class TestMaskText:
    def test_masks_flag_fragments(self) -> None:
        text = "exec tnet agent --crypt-key=abc123 --listen=:1: not found"

        assert mask_text(text) == (
            "exec tnet agent --crypt-key=********** --listen=:1: not found"
        )

    def test_masks_bare_secret_values(self) -> None:
        result = mask_text("bad key 'abc123'", ["--crypt-key=abc123"])

        assert result == f"bad key '{MASK}'"

    def test_longer_secret_masked_first(self) -> None:
        result = mask_text(
            "abcdef and abc", ["--crypt-key=abc", "--crypt-key=abcdef"]
        )

        assert result == f"{MASK} and {MASK}"

    def test_text_without_secrets_unchanged(self) -> None:
        assert mask_text("nothing here", ["--listen=:1"]) == "nothing here"
