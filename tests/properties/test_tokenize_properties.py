from hypothesis import given, strategies as st

from tnetctl.args import join_args, parse_direct_command, tokenize

@given(args=st.lists(st.text(min_size=1)))
def test_join_then_tokenize_round_trips(args: list[str]) -> None:
    assert tokenize(join_args(args)) == args


@given(line=st.text(alphabet=st.characters(blacklist_characters='"\\')))
def test_unquoted_input_splits_on_spaces(line: str) -> None:
    assert tokenize(line) == [part for part in line.split(" ") if part]


@given(line=st.text())
def test_tokens_are_never_empty(line: str) -> None:
    try:
        tokens = tokenize(line)
    except ValueError:
        return
    assert all(tokens)


@given(args=st.lists(st.text(min_size=1), min_size=1))
def test_leading_kind_token_is_stripped(args: list[str]) -> None:
    assert parse_direct_command(join_args(["agent", *args])) == args
