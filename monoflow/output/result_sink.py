"""
Append-only key/value channel read by the CI host.
"""
import json
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging


def encode_value(value: Any) -> str:
    """Strings pass through, everything else is compact JSON"""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, separators=(',', ':'))


class ResultSink(ABC):
    """Writes are appended; reading a key returns its last write"""

    @abstractmethod
    def set(self, key: str, value: Any):
        pass

    @abstractmethod
    def read(self) -> Dict[str, str]:
        pass

    def get(self, key: str) -> Optional[str]:
        return self.read().get(key)


class MemoryResultSink(ResultSink):
    """Sink used when no host output file is available"""

    def __init__(self):
        self.entries: List[tuple] = []

    def set(self, key: str, value: Any):
        self.entries.append((key, encode_value(value)))

    def read(self) -> Dict[str, str]:
        return dict(self.entries)


class GithubOutputSink(ResultSink):
    """$GITHUB_OUTPUT file format, with heredoc blocks for multi-line values"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def set(self, key: str, value: Any):
        text = encode_value(value)
        if "\n" in text:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            block = f"{key}<<{delimiter}\n{text}\n{delimiter}\n"
        else:
            block = f"{key}={text}\n"
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(block)
        self.logger.debug(f"Output set: {key}")

    def read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        values: Dict[str, str] = {}
        lines = self.path.read_text(encoding='utf-8').splitlines()
        i = 0
        while i < len(lines):
            line = lines[i]
            i += 1
            if '<<' in line and ('=' not in line or line.index('<<') < line.index('=')):
                key, delimiter = line.split('<<', 1)
                body = []
                while i < len(lines) and lines[i] != delimiter:
                    body.append(lines[i])
                    i += 1
                i += 1  # skip closing delimiter
                values[key] = "\n".join(body)
            elif '=' in line:
                key, value = line.split('=', 1)
                values[key] = value
        return values
