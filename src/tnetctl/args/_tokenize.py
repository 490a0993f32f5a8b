"""Command-line tokenizer for direct-mode input.

What the operator types is exactly what the tunnel binary receives.

Rules, applied character by character:
- A backslash makes the next character literal (including quotes, spaces and
  backslashes).
- A double quote toggles quoting; inside quotes a space does not end a token.
- An unquoted, unescaped space ends the current token. Empty tokens are never
  emitted.
- The last token is flushed at end of input.

Only the space character separates tokens; tabs and newlines are ordinary
characters.
"""

from tnetctl.enums import ServiceKind
from tnetctl.exceptions import ValidationError

_ESCAPE = "\\"
_QUOTE = '"'
_SEPARATOR = " "

_KIND_TOKENS = frozenset(kind.value for kind in ServiceKind)


def tokenize(command_line: str) -> list[str]:
    """Split a raw command line into argument tokens.

    Args:
        command_line: The command line as typed by the operator.

    Returns:
        The list of tokens, in order.

    Raises:
        ValidationError: If a double quote is left unterminated.
    """
    tokens: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False

    for char in command_line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == _ESCAPE:
            escaped = True
        elif char == _QUOTE:
            in_quotes = not in_quotes
        elif char == _SEPARATOR and not in_quotes:
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)

    if in_quotes:
        msg = "Unterminated quote in command line"
        raise ValidationError(msg, field="direct_command")

    if current:
        tokens.append("".join(current))

    return tokens


def strip_kind_token(tokens: list[str]) -> list[str]:
    """Drop a leading ``agent`` or ``proxy`` token.

    The service kind comes from the request context, never from the command
    text, so a pasted ``agent --tunnel-listen=...`` line is accepted as is.

    Args:
        tokens: Tokenized arguments.

    Returns:
        The tokens without a leading kind token.
    """
    if tokens and tokens[0] in _KIND_TOKENS:
        return tokens[1:]
    return list(tokens)


def parse_direct_command(command_line: str) -> list[str]:
    """Tokenize a direct-mode command line and strip a leading kind token.

    Args:
        command_line: The command line as typed by the operator.

    Returns:
        The argument list for the instance.

    Raises:
        ValidationError: If a double quote is left unterminated.
    """
    return strip_kind_token(tokenize(command_line))


def quote_token(token: str) -> str:
    """Quote a single token so that `tokenize` reads it back unchanged.

    Args:
        token: A non-empty argument token.

    Returns:
        The token with backslashes and quotes escaped, wrapped in double
        quotes when it contains a space.
    """
    escaped = token.replace(_ESCAPE, _ESCAPE * 2).replace(_QUOTE, _ESCAPE + _QUOTE)
    if _SEPARATOR in escaped:
        return f"{_QUOTE}{escaped}{_QUOTE}"
    return escaped


def join_args(args: list[str]) -> str:
    """Join argument tokens into a command line `tokenize` can parse back."""
    return _SEPARATOR.join(quote_token(arg) for arg in args)


def format_command(program: str, kind: ServiceKind, args: list[str]) -> str:
    """Reconstruct the full command line for an instance.

    Args:
        program: Display name of the tunnel binary, e.g. ``tnet``.
        kind: The instance kind, emitted as the subcommand.
        args: The instance arguments.

    Returns:
        A command line such as ``tnet agent --tunnel-listen=0.0.0.0:9000``.
    """
    line = f"{program}{_SEPARATOR}{kind.value}"
    if args:
        line += _SEPARATOR + join_args(args)
    return line
