"""Migration and rollback run reports."""

from enum import StrEnum

from pydantic import BaseModel, Field


class PartitionStatus(StrEnum):
    """Terminal state of one partition within a migration or rollback run."""

    DONE = "done"
    REPORT_ONLY = "report_only"
    SKIPPED = "skipped"
    FAILED = "failed"


class CollectionReport(BaseModel):
    """Outcome of a migration run for one partition."""

    collection: str = Field(description="Live partition name")
    entity_kind: str
    ac_key: int
    status: PartitionStatus
    total: int = Field(default=0, description="Documents identified by the scan")
    updated: int = Field(default=0, description="Documents actually modified")
    backed_up: int = Field(default=0, description="Documents copied to the backup collection")
    error: str | None = None


class UpdateTotals(BaseModel):
    """Running totals for one entity kind across all AC partitions."""

    updated: int = 0
    total: int = 0


class MigrationSummary(BaseModel):
    """Grand summary of a migration run."""

    migration: str
    backup_suffix: str
    dry_run: bool
    collections: list[CollectionReport] = Field(default_factory=list)
    totals: dict[str, UpdateTotals] = Field(default_factory=dict, description="Totals keyed by entity kind")

    @property
    def failed(self) -> list[CollectionReport]:
        return [c for c in self.collections if c.status is PartitionStatus.FAILED]

    def record(self, report: CollectionReport) -> None:
        """Append a partition report and fold it into the per-kind totals."""
        self.collections.append(report)
        totals = self.totals.setdefault(report.entity_kind, UpdateTotals())
        totals.updated += report.updated
        totals.total += report.total


class BackupCollection(BaseModel):
    """One backup collection found in the store."""

    name: str
    base_collection: str
    backup_type: str = Field(description="Backup tag, e.g. _backup_ or _typefix_")
    date: str = Field(description="Backup date as YYYYMMDD")
    documents: int = 0

    @property
    def suffix(self) -> str:
        return f"{self.backup_type}{self.date}"


class BackupGroup(BaseModel):
    """Backup collections sharing one tag and date."""

    suffix: str
    collections: list[BackupCollection] = Field(default_factory=list)


class RestoreReport(BaseModel):
    """Outcome of restoring one live partition from one backup collection."""

    backup_collection: str
    collection: str
    status: PartitionStatus
    backup_documents: int = 0
    restored: int = 0
    would_restore: int = 0
    error: str | None = None


class RollbackSummary(BaseModel):
    """Grand summary of a rollback run."""

    backup_suffix: str
    dry_run: bool
    collections: int = Field(default=0, description="Backup collections processed")
    restored: int = 0
    would_restore: int = 0
    reports: list[RestoreReport] = Field(default_factory=list)
