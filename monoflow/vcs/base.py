"""
Version-control oracle interface used by change detection.
"""
from abc import ABC, abstractmethod
from typing import List, Optional


class VcsOracle(ABC):
    """
    Read-only view of repository history.

    Every method raises VcsError on failure. Callers must treat that as
    "unknown", never as "no changes".
    """

    @abstractmethod
    def diff(self, base: str, head: str = "HEAD") -> List[str]:
        """Paths changed between base and head"""
        pass

    @abstractmethod
    def tags_by_version(self) -> List[str]:
        """All tags, highest version first"""
        pass

    @abstractmethod
    def fetch(self, ref: Optional[str] = None, depth: Optional[int] = None,
              tags: bool = False, unshallow: bool = False) -> None:
        """Fetch additional history from the remote"""
        pass

    @abstractmethod
    def rev_parse(self, ref: str) -> str:
        """Resolve a ref to a commit id"""
        pass

    @abstractmethod
    def is_shallow(self) -> bool:
        """Whether the working copy is a shallow clone"""
        pass
