# lit_curation/workflow/store.py

from __future__ import annotations

from collections import OrderedDict
from typing import (
    Callable,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    TypeVar,
)

from lit_curation.errors import DuplicateItemError, UnknownItemError


class HasId(Protocol):
    id: str


T = TypeVar("T", bound=HasId)


class ItemStore(Generic[T]):
    """
    Ordered, id-keyed collection of mutable items (papers or claims).

    - Insertion order is preserved and is the order batches iterate in.
    - New items are only ever appended; existing entries are mutated in
      place through `update()`.
    - `filter()` returns the live items, not copies, so callers that
      mutate them must go through the owning Session to publish.
    """

    def __init__(self, items: Optional[Iterable[T]] = None) -> None:
        self._items: "OrderedDict[str, T]" = OrderedDict()
        if items is not None:
            self.extend(items)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        # Iterate over a snapshot so removals during iteration are safe.
        return iter(list(self._items.values()))

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def get(self, item_id: str) -> T:
        try:
            return self._items[item_id]
        except KeyError:
            raise UnknownItemError(f"No item with id {item_id!r}") from None

    def find(self, item_id: str) -> Optional[T]:
        return self._items.get(item_id)

    def ids(self) -> List[str]:
        return list(self._items.keys())

    def filter(self, predicate: Callable[[T], bool]) -> List[T]:
        return [item for item in self._items.values() if predicate(item)]

    def to_list(self) -> List[T]:
        return list(self._items.values())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def append(self, item: T) -> T:
        if item.id in self._items:
            raise DuplicateItemError(f"Item {item.id!r} already present")
        self._items[item.id] = item
        return item

    def extend(self, items: Iterable[T]) -> List[T]:
        """
        Append several items at once. Either all of them are added or,
        if any id clashes, none are.
        """
        batch = list(items)
        seen = set()
        for item in batch:
            if item.id in self._items or item.id in seen:
                raise DuplicateItemError(f"Item {item.id!r} already present")
            seen.add(item.id)

        for item in batch:
            self._items[item.id] = item
        return batch

    def update(self, item_id: str, mutate: Callable[[T], None]) -> T:
        """Apply `mutate` to the stored item in place and return it."""
        item = self.get(item_id)
        mutate(item)
        return item

    def remove(self, item_id: str) -> T:
        try:
            return self._items.pop(item_id)
        except KeyError:
            raise UnknownItemError(f"No item with id {item_id!r}") from None
