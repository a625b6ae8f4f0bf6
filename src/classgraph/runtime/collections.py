"""
Observable list and dict.

Values assigned to observable attributes are wrapped so that in-place
mutations are reported with their path from the owning attribute:
list mutations as splices, dict writes and nested assignments as updates.
Paths are computed on demand from parent links, so a nested collection
moved by a splice reports under its new index.
"""

from typing import Any, Iterable, List, Optional

from .identity import InstanceToken


class _Tracked:
    """Parent link shared by the observable collections."""

    def _attach(self, token: Optional[InstanceToken], parent: Optional["_Tracked"], key: Any) -> None:
        self._token = token
        self._parent = parent
        self._key = key

    def _path(self) -> List[str]:
        prefix = self._parent._path() if self._parent is not None else []
        return prefix + [str(self._key)]

    def _reporter(self):
        token = self._token
        if token is None or token.container is None:
            return None
        return token.container


def observe(value: Any, token: Optional[InstanceToken], parent: Optional[_Tracked] = None, key: Any = None) -> Any:
    """
    Wrap plain lists and dicts (recursively) into observable collections.
    Other values are returned unchanged.
    """
    if isinstance(value, _Tracked):
        value._attach(token, parent, key)
        return value
    if type(value) is list:
        return ObservableList(value, token=token, parent=parent, key=key)
    if type(value) is dict:
        return ObservableDict(value, token=token, parent=parent, key=key)
    return value


class ObservableList(_Tracked, list):

    def __init__(self, items: Iterable = (), token=None, parent=None, key=None):
        super().__init__()
        self._attach(token, parent, key)
        list.extend(self, (observe(item, token, self, index) for index, item in enumerate(items)))

    def _wrap(self, value: Any, index: int) -> Any:
        return observe(value, self._token, self, index)

    def _reindex(self) -> None:
        for index, item in enumerate(self):
            if isinstance(item, _Tracked) and item._parent is self:
                item._key = index

    def _splice(self, index: int, delete_count: int, items: list) -> None:
        self._reindex()
        reporter = self._reporter()
        if reporter is not None:
            reporter.report_splice(self._token, self._path(), index, delete_count, items)

    def _replace_all(self, old_length: int) -> None:
        self._splice(0, old_length, list(self))

    def _normalize(self, index: int) -> int:
        length = len(self)
        if index < 0:
            return max(length + index, 0)
        return min(index, length)

    def append(self, item: Any) -> None:
        index = len(self)
        item = self._wrap(item, index)
        list.append(self, item)
        self._splice(index, 0, [item])

    def extend(self, items: Iterable) -> None:
        index = len(self)
        wrapped = [self._wrap(item, index + offset) for offset, item in enumerate(items)]
        if not wrapped:
            return
        list.extend(self, wrapped)
        self._splice(index, 0, wrapped)

    def insert(self, index: int, item: Any) -> None:
        index = self._normalize(index)
        item = self._wrap(item, index)
        list.insert(self, index, item)
        self._splice(index, 0, [item])

    def pop(self, index: int = -1) -> Any:
        position = index if index >= 0 else len(self) + index
        value = list.pop(self, index)
        self._splice(position, 1, [])
        return value

    def remove(self, value: Any) -> None:
        del self[self.index(value)]

    def clear(self) -> None:
        length = len(self)
        list.clear(self)
        if length:
            self._splice(0, length, [])

    def sort(self, *args, **kwargs) -> None:
        list.sort(self, *args, **kwargs)
        self._replace_all(len(self))

    def reverse(self) -> None:
        list.reverse(self)
        self._replace_all(len(self))

    def __setitem__(self, key, value) -> None:
        if isinstance(key, slice):
            old_length = len(self)
            list.__setitem__(self, key, [self._wrap(item, 0) for item in value])
            self._replace_all(old_length)
            return
        position = key if key >= 0 else len(self) + key
        value = self._wrap(value, position)
        list.__setitem__(self, key, value)
        self._splice(position, 1, [value])

    def __delitem__(self, key) -> None:
        if isinstance(key, slice):
            old_length = len(self)
            list.__delitem__(self, key)
            self._replace_all(old_length)
            return
        position = key if key >= 0 else len(self) + key
        list.__delitem__(self, key)
        self._splice(position, 1, [])

    def __iadd__(self, items: Iterable):
        self.extend(items)
        return self

    def __imul__(self, times: int):
        old_length = len(self)
        list.__imul__(self, times)
        self._replace_all(old_length)
        return self


class ObservableDict(_Tracked, dict):

    def __init__(self, mapping=(), token=None, parent=None, key=None):
        super().__init__()
        self._attach(token, parent, key)
        for name, value in dict(mapping).items():
            dict.__setitem__(self, name, observe(value, token, self, name))

    def _update(self, key: Any, value: Any) -> None:
        reporter = self._reporter()
        if reporter is not None:
            reporter.report_update(self._token, self._path() + [str(key)], value)

    def __setitem__(self, key, value) -> None:
        value = observe(value, self._token, self, key)
        dict.__setitem__(self, key, value)
        self._update(key, value)

    def __delitem__(self, key) -> None:
        dict.__delitem__(self, key)
        self._update(key, None)

    def pop(self, key, *default):
        if key not in self:
            return dict.pop(self, key, *default)
        value = dict.pop(self, key)
        self._update(key, None)
        return value

    def popitem(self):
        key, value = dict.popitem(self)
        self._update(key, None)
        return key, value

    def setdefault(self, key, default=None):
        if key not in self:
            self[key] = default
        return dict.__getitem__(self, key)

    def update(self, *args, **kwargs) -> None:
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def clear(self) -> None:
        keys = list(self)
        dict.clear(self)
        for key in keys:
            self._update(key, None)
