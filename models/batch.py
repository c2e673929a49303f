from dataclasses import dataclass, field


@dataclass
class BatchFailure:
    item_id: int
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class BatchResult:
    """Success count plus per-item failures of a batch run."""
    created: int = 0
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [str(f) for f in self.failures]

    @property
    def ok(self) -> bool:
        return not self.failures
