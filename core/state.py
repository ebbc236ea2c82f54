"""
Scoped session state.

Keys prefixed with `app:` are shared by every session of an app, keys
prefixed with `user:` by every session of one user within the app. Any other
key is local to its session.
"""

from typing import Any, Iterator

from .constants import APP_PREFIX, USER_PREFIX


class State:
    """A state view that records every write as a pending delta.

    Reads see the delta first, then the underlying value. Writes update both
    so later reads in the same step observe them, while the delta is what
    ends up in the event's `state_delta`.
    """

    APP_PREFIX = APP_PREFIX
    USER_PREFIX = USER_PREFIX

    def __init__(self, value: dict[str, Any], delta: dict[str, Any]):
        self._value = value
        self._delta = delta

    def __getitem__(self, key: str) -> Any:
        if key in self._delta:
            return self._delta[key]
        return self._value[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._value[key] = value
        self._delta[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._value or key in self._delta

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_dict())

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self:
            return default
        return self[key]

    def update(self, delta: dict[str, Any]) -> None:
        self._value.update(delta)
        self._delta.update(delta)

    def has_delta(self) -> bool:
        return bool(self._delta)

    def to_dict(self) -> dict[str, Any]:
        result = dict(self._value)
        result.update(self._delta)
        return result


def split_scope(key: str) -> tuple[str | None, str]:
    """Split a state key into its scope prefix and the bare key.

    Returns:
        (prefix, bare_key) where prefix is `app:`, `user:` or None
    """
    for prefix in (APP_PREFIX, USER_PREFIX):
        if key.startswith(prefix):
            return prefix, key[len(prefix):]
    return None, key
