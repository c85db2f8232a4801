import itertools

import pytest


class SequentialIdentifierSource:
    """Deterministic identifiers: 00000000-0000-4000-8000-000000000001, ..."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self.issued: list[str] = []

    def new_uuid(self) -> str:
        value = f"00000000-0000-4000-8000-{next(self._counter):012x}"
        self.issued.append(value)
        return value

    def new_screen_hook(self) -> str:
        value = f"{next(self._counter):032x}"
        self.issued.append(value)
        return value


@pytest.fixture
def id_source() -> SequentialIdentifierSource:
    return SequentialIdentifierSource()
