"""Router configuration.

RouterConfig is a frozen dataclass, immutable after creation and configured
in code.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(base="/app", document_root="./public")
    """

    # Webroot subdirectory; routed urls are relative to it
    base: str = ""

    # File targets are resolved (and confined) here
    document_root: str | Path = "."

    # Controller targets: "user-profile" -> UserProfileController
    controller_suffix: str = "Controller"
    # Action targets: "show-all" -> show_all_action
    action_suffix: str = "_action"
    default_action: str = "default"

    # A ``_method`` form field overrides the request method (HTML forms)
    allow_method_override: bool = True

    # Output format when neither the response nor the Accept header decides
    default_format: str = "html"

    # Unexpected exceptions show their message in the 500 output
    debug: bool = False
