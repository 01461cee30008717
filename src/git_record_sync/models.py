import json
from dataclasses import dataclass

from .constants import DELETE_MESSAGE, RECORD_SUFFIX, UPSERT_MESSAGE


def validate_record_id(record_id: str) -> str:
    """Ensures a record identifier maps to exactly one file at the repository root.

    Args:
        record_id (str): The identifier to check.

    Returns:
        str: The identifier, unchanged.

    Raises:
        ValueError: If the identifier is empty or could address another path.
    """
    if not isinstance(record_id, str) or not record_id:
        raise ValueError("Record id must be a non-empty string")
    if record_id in (".", "..") or any(c in record_id for c in ("/", "\\", "\0")):
        raise ValueError(f"Invalid record id '{record_id}'")
    return record_id


@dataclass(frozen=True)
class Record:
    """A person record mirrored into the repository as `<id>.json`.

    Attributes:
        id (str): The unique record identifier, also the file name stem.
        first_name (str): Given name.
        last_name (str): Family name.
        birthday (str): Birthday as provided by the source (not parsed).
    """

    id: str
    first_name: str
    last_name: str
    birthday: str

    def __post_init__(self) -> None:
        validate_record_id(self.id)

    @property
    def filename(self) -> str:
        return self.id + RECORD_SUFFIX

    def to_json(self) -> str:
        """Serializes the record as tab-indented JSON with a stable key order."""
        body = {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "birthday": self.birthday,
        }
        return json.dumps(body, indent="\t", ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str | bytes) -> "Record":
        """Parses a record file body produced by `to_json`."""
        data = json.loads(text)
        return cls(
            id=data["id"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            birthday=data["birthday"],
        )


@dataclass(frozen=True)
class Upsert:
    """Create or replace the file for `record`."""

    record: Record

    kind = "upsert"

    @property
    def record_id(self) -> str:
        return self.record.id

    @property
    def filename(self) -> str:
        return self.record.filename

    @property
    def commit_message(self) -> str:
        return UPSERT_MESSAGE.format(record_id=self.record_id)


@dataclass(frozen=True)
class Delete:
    """Remove the file for `record_id`."""

    record_id: str

    kind = "delete"

    def __post_init__(self) -> None:
        validate_record_id(self.record_id)

    @property
    def filename(self) -> str:
        return self.record_id + RECORD_SUFFIX

    @property
    def commit_message(self) -> str:
        return DELETE_MESSAGE.format(record_id=self.record_id)


Operation = Upsert | Delete


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a publish step.

    Attributes:
        committed (bool): False when the working tree was already clean.
        pushed (bool): Mirrors `committed`; nothing is pushed without a commit.
        commit (str | None): SHA of the new commit, if one was created.
    """

    committed: bool
    pushed: bool
    commit: str | None = None
