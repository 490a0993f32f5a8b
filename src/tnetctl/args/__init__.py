"""Argument list construction, tokenizing, and secret masking.

Key Components:
    - build_args: Compile a service configuration into tunnel arguments
    - normalize_args: Validate a submitted argument list
    - parse_configuration: Validate a raw configuration payload for a kind
    - tokenize / parse_direct_command: Direct-mode command-line parsing
    - format_command / join_args: Reconstruct a parseable command line
    - mask_args / mask_text: Crypt-key redaction for display and logs
    - generate_crypt_key: Random default crypt key

Example:
    >>> from tnetctl.args import build_args, mask_args, parse_configuration
    >>> from tnetctl.enums import ServiceKind
    >>> config = parse_configuration(
    ...     ServiceKind.AGENT,
    ...     {"inputMode": "form", "tunnelListen": "0.0.0.0:9000", "cryptKey": "k"},
    ... )
    >>> mask_args(build_args(ServiceKind.AGENT, config))
    ['--tunnel-listen=0.0.0.0:9000', '--crypt-key=**********']
"""

from ._builder import build_agent_args, build_args, build_proxy_args, normalize_args
from ._crypt_key import CRYPT_KEY_DIGITS, generate_crypt_key
from ._masking import (
    CRYPT_KEY_PREFIX,
    MASK,
    MASKED_CRYPT_KEY,
    mask_args,
    mask_text,
    secret_values,
)
from ._models import (
    AgentFormConfiguration,
    DirectConfiguration,
    ProxyFormConfiguration,
    ServiceConfiguration,
    parse_configuration,
)
from ._tokenize import (
    format_command,
    join_args,
    parse_direct_command,
    quote_token,
    strip_kind_token,
    tokenize,
)

__all__ = [
    "CRYPT_KEY_DIGITS",
    "CRYPT_KEY_PREFIX",
    "MASK",
    "MASKED_CRYPT_KEY",
    "AgentFormConfiguration",
    "DirectConfiguration",
    "ProxyFormConfiguration",
    "ServiceConfiguration",
    "build_agent_args",
    "build_args",
    "build_proxy_args",
    "format_command",
    "generate_crypt_key",
    "join_args",
    "mask_args",
    "mask_text",
    "normalize_args",
    "parse_configuration",
    "parse_direct_command",
    "quote_token",
    "secret_values",
    "strip_kind_token",
    "tokenize",
]
