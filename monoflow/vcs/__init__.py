from .base import VcsOracle
from .git import GitOracle

__all__ = ['VcsOracle', 'GitOracle']
