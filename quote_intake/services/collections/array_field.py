"""Bounded, immutable container for one editable collection.

Every operation returns a new ``ArrayField``; the original is never changed.
Items are addressed by their ``id``.
"""

from typing import Callable, Generic, Iterator, Optional, Sequence, Tuple, TypeVar

from quote_intake.core.exceptions import CardinalityError, ConfigurationError, EntityNotFoundError
from quote_intake.models.entities import EntityModel
from quote_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T", bound=EntityModel)

BeforeRemoveHook = Callable[[T, Tuple[T, ...]], bool]


class ArrayField(Generic[T]):
    """Collection with minimum/maximum cardinality and a default-item factory.

    Args:
        create_default_item: Factory returning a new item with a fresh id
        items: Initial items
        min_items: Minimum number of items; shorter inputs are padded
        max_items: Maximum number of items, or None for no limit
    """

    def __init__(
        self,
        create_default_item: Callable[[], T],
        items: Sequence[T] = (),
        min_items: int = 0,
        max_items: Optional[int] = None,
    ):
        if min_items < 0 or (max_items is not None and max_items < min_items):
            raise ConfigurationError(
                f"Invalid cardinality bounds: min_items={min_items}, max_items={max_items}"
            )
        self.create_default_item = create_default_item
        self.min_items = min_items
        self.max_items = max_items
        self._items: Tuple[T, ...] = tuple(items)

    def _with_items(self, items: Sequence[T]) -> "ArrayField[T]":
        return ArrayField(
            self.create_default_item,
            items,
            min_items=self.min_items,
            max_items=self.max_items,
        )

    @property
    def items(self) -> Tuple[T, ...]:
        return self._items

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def can_add(self) -> bool:
        return self.max_items is None or self.count < self.max_items

    @property
    def can_remove(self) -> bool:
        return self.count > self.min_items

    @property
    def meets_minimum(self) -> bool:
        return self.count >= self.min_items

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> Optional[T]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def index_of(self, item_id: str) -> int:
        """Index of the item with ``item_id``, or -1 when absent."""
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return -1

    def padded(self) -> "ArrayField[T]":
        """Container padded with default items up to ``min_items``."""
        if self.meets_minimum:
            return self
        items = list(self._items)
        while len(items) < self.min_items:
            items.append(self.create_default_item())
        return self._with_items(items)

    def add(self, item: Optional[T] = None) -> "ArrayField[T]":
        """Append ``item``, or a new default item when none is given.

        Raises:
            CardinalityError: If the container is already at ``max_items``
        """
        if not self.can_add:
            raise CardinalityError(f"Cannot add more than {self.max_items} item(s)")
        new_item = item if item is not None else self.create_default_item()
        return self._with_items(self._items + (new_item,))

    def duplicate(self, item_id: str, new_id: str) -> "ArrayField[T]":
        """Insert a copy of an item, under ``new_id``, right after the original.

        Raises:
            EntityNotFoundError: If no item has ``item_id``
            CardinalityError: If the container is already at ``max_items``
        """
        index = self.index_of(item_id)
        if index < 0:
            raise EntityNotFoundError(f"No item with id {item_id}")
        if not self.can_add:
            raise CardinalityError(f"Cannot add more than {self.max_items} item(s)")
        copy = self._items[index].model_copy(update={"id": new_id})
        items = list(self._items)
        items.insert(index + 1, copy)
        return self._with_items(items)

    def remove(
        self,
        item_id: str,
        before_remove: Optional[BeforeRemoveHook] = None,
    ) -> Tuple["ArrayField[T]", bool]:
        """Remove an item unless that would go below ``min_items`` or the hook vetoes.

        Args:
            item_id: Id of the item to remove
            before_remove: Called with the item and all items; return False to veto

        Returns:
            Tuple of (container, removed). The container is unchanged when
            ``removed`` is False.
        """
        item = self.get(item_id)
        if item is None or not self.can_remove:
            return self, False
        if before_remove is not None and not before_remove(item, self._items):
            LOGGER.debug("Item removal vetoed", extra={"item_id": item_id})
            return self, False
        return self._with_items([i for i in self._items if i.id != item_id]), True

    def update(self, item_id: str, **updates) -> "ArrayField[T]":
        """Replace attributes of one item. Unknown ids leave the container as is."""
        return self._with_items([
            item.model_copy(update=updates) if item.id == item_id else item
            for item in self._items
        ])

    def move(self, from_index: int, to_index: int) -> "ArrayField[T]":
        """Move an item to a new position. Out-of-range indexes are ignored."""
        count = self.count
        if not (0 <= from_index < count and 0 <= to_index < count) or from_index == to_index:
            return self
        items = list(self._items)
        items.insert(to_index, items.pop(from_index))
        return self._with_items(items)

    def replace(self, items: Sequence[T]) -> "ArrayField[T]":
        """Replace all items, padding to ``min_items`` and truncating to ``max_items``."""
        new_items = list(items)
        while len(new_items) < self.min_items:
            new_items.append(self.create_default_item())
        if self.max_items is not None and len(new_items) > self.max_items:
            new_items = new_items[:self.max_items]
        return self._with_items(new_items)

    def clear(self) -> "ArrayField[T]":
        """Remove every item, keeping ``min_items`` default items."""
        return self.replace(())
