from pathlib import Path

import pytest


class FilesFixture:
    """A fixture providing access to test files."""

    def __init__(self, directory: str):
        self._base_path = Path(__file__).parent.parent
        self.directory = self._base_path / "files" / directory

    def sample_data(self, filename: str) -> bytes:
        return self.sample_path(filename).read_bytes()

    def sample_text(self, filename: str) -> str:
        return self.sample_path(filename).read_text()

    def sample_path(self, filename: str) -> Path:
        return self.directory / filename

    def sample_path_str(self, filename: str) -> str:
        return str(self.sample_path(filename))


class FirehoseFilesFixture(FilesFixture):
    """A fixture providing access to Firehose response documents."""

    def __init__(self) -> None:
        super().__init__("firehose")


@pytest.fixture()
def firehose_files_fixture() -> FirehoseFilesFixture:
    """A fixture providing access to Firehose response documents."""
    return FirehoseFilesFixture()
