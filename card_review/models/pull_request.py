"""Pull request data models."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


# VersionControlChangeType.Delete when the SDK hands back the raw flag value
DELETE_FLAG = 16


class ChangeKind(str, Enum):
    """Kind of change recorded for a file in a PR iteration."""

    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    RENAME = "rename"
    OTHER = "other"

    @classmethod
    def from_platform(cls, value: Any) -> "ChangeKind":
        """
        Map an Azure DevOps change type to ChangeKind.

        The SDK usually returns a comma separated string ("edit, rename"),
        older payloads carry the numeric flag set, either as an int or as
        a digit string.
        """
        if value is None:
            return cls.OTHER

        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())

        if isinstance(value, int):
            if value & DELETE_FLAG:
                return cls.DELETE
            if value & 1:
                return cls.ADD
            if value & 2:
                return cls.EDIT
            if value & 8:
                return cls.RENAME
            return cls.OTHER

        change_type_str = str(value).lower()
        if "delete" in change_type_str:
            return cls.DELETE
        if "add" in change_type_str:
            return cls.ADD
        if "edit" in change_type_str:
            return cls.EDIT
        if "rename" in change_type_str:
            return cls.RENAME
        return cls.OTHER


class PullRequestInfo(BaseModel):
    """Pull request metadata needed to read its files."""

    pr_id: int
    title: str
    repository_id: str
    project_name: str


class IterationChange(BaseModel):
    """One file entry of a PR iteration."""

    path: Optional[str] = None
    object_id: Optional[str] = None
    change_kind: ChangeKind = ChangeKind.OTHER
    is_folder: bool = False
    has_item: bool = True

    @property
    def is_reviewable(self) -> bool:
        """Whether the entry points at file content worth reading."""
        return (
            self.has_item
            and self.change_kind is not ChangeKind.DELETE
            and not self.is_folder
        )
