"""
Exceptions raised by the workspace pipeline.
"""


class TabMindError(Exception):
    """Base class for all TabMind errors."""


class TabNotFoundError(TabMindError):
    """Raised when a tab id no longer resolves to a live tab."""

    def __init__(self, tab_id: int):
        super().__init__(f"No tab with id: {tab_id}")
        self.tab_id = tab_id


class StorageError(TabMindError):
    """Raised when the key-value store cannot read or write a value."""


class GroupNotFoundError(TabMindError):
    """Raised when a visual group id is unknown to the host."""

    def __init__(self, group_id: int):
        super().__init__(f"No tab group with id: {group_id}")
        self.group_id = group_id
