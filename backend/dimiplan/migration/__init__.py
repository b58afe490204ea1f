"""Legacy plaintext to encrypted layout migration."""

from dimiplan.migration.engine import MIGRATED_MODELS, MigrationEngine, MigrationReport, TableReport

__all__ = ["MIGRATED_MODELS", "MigrationEngine", "MigrationReport", "TableReport"]
