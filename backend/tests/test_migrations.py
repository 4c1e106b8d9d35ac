"""The initial migration builds the same schema as the table models."""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from expense_approvals.models import SQLModel

VERSIONS_DIR = Path(__file__).resolve().parents[1] / "alembic" / "versions"


def _load_revision(name: str) -> ModuleType:
    module_spec = importlib.util.spec_from_file_location(name, VERSIONS_DIR / f"{name}.py")
    assert module_spec is not None and module_spec.loader is not None
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


def test_initial_migration_matches_models(tmp_path: Path) -> None:
    revision = _load_revision("0001_initial")
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")

    with engine.begin() as conn, Operations.context(MigrationContext.configure(conn)):
        revision.upgrade()

    inspector = sa.inspect(engine)
    assert set(inspector.get_table_names()) == set(SQLModel.metadata.tables)
    for name, table in SQLModel.metadata.tables.items():
        migrated_columns = {column["name"] for column in inspector.get_columns(name)}
        assert migrated_columns == set(table.columns.keys()), name
        migrated_indexes = {index["name"] for index in inspector.get_indexes(name)}
        model_indexes = {index.name for index in table.indexes}
        assert model_indexes <= migrated_indexes, name
    engine.dispose()


def test_downgrade_removes_every_table(tmp_path: Path) -> None:
    revision = _load_revision("0001_initial")
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")

    with engine.begin() as conn, Operations.context(MigrationContext.configure(conn)):
        revision.upgrade()
        revision.downgrade()

    assert sa.inspect(engine).get_table_names() == []
    engine.dispose()
