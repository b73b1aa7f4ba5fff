"""
Per-scope visibility checks for stored Nightscout endpoints.
"""

from typing import Mapping, Optional


def is_visible(
    visibility_by_scope: Mapping[str, bool],
    scope: Optional[str],
    is_self: bool,
) -> bool:
    """
    Decide whether an endpoint may be shown in ``scope``.

    Users always see their own data. For anyone else the stored flag for the
    scope decides, and a missing flag (or a missing scope) means private.
    """
    if is_self:
        return True
    if scope is None:
        return False
    return bool(visibility_by_scope.get(scope, False))
