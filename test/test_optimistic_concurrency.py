from dataclasses import replace
from pathlib import Path

import pytest

from conftest import seed_user, stored_version
from storeback.domain.errors import InvalidTransitionError, NotFoundError, VersionConflictError
from storeback.domain.models import Sale
from storeback.repositories.sale_repository import SqliteSaleRepository
from storeback.services.sales_service import SaleService


def _setup(tmp_path: Path):
    repo = SqliteSaleRepository(tmp_path / "occ.db")
    repo.init_db()
    user_id = seed_user(repo)
    sales = SaleService(repo)
    sale = sales.create(Sale(user_id=user_id, total_amount=80.0, payment_type="cash"))
    return repo, sales, sale


def test_update_bumps_version_and_stale_copy_conflicts(tmp_path: Path):
    repo, sales, sale = _setup(tmp_path)
    stale = replace(sale)

    sale.notes = "first writer"
    updated = sales.update(sale)
    assert updated.version == 2
    assert updated.updated_at >= updated.created_at

    stale.notes = "second writer"
    with pytest.raises(VersionConflictError):
        sales.update(stale)

    assert stored_version(repo, sale.id) == 2
    assert sales.get_by_id(sale.id).notes == "first writer"


def test_repository_conflict_is_detected_at_storage(tmp_path: Path):
    repo, _, sale = _setup(tmp_path)
    stale = replace(sale)

    repo.update(sale)
    with pytest.raises(VersionConflictError):
        repo.update(stale)

    assert repo.get_version_by_id(sale.id) == 2


def test_repository_update_of_missing_sale_is_not_found(tmp_path: Path):
    repo, _, sale = _setup(tmp_path)
    ghost = replace(sale, id=sale.id + 100)

    with pytest.raises(NotFoundError):
        repo.update(ghost)


def test_update_rejects_missing_version(tmp_path: Path):
    repo, sales, sale = _setup(tmp_path)
    with pytest.raises(VersionConflictError):
        sales.update(replace(sale, version=0))
    assert stored_version(repo, sale.id) == 1


def test_update_cannot_change_status(tmp_path: Path):
    repo, sales, sale = _setup(tmp_path)
    with pytest.raises(InvalidTransitionError):
        sales.update(replace(sale, status="completed"))
    assert sales.get_by_id(sale.id).status == "active"
    assert stored_version(repo, sale.id) == 1


def test_version_check_runs_before_status_check(tmp_path: Path):
    _, sales, sale = _setup(tmp_path)
    stale = replace(sale)
    sales.complete(sale.id)

    with pytest.raises(VersionConflictError):
        sales.update(stale)


def test_failed_status_write_restores_in_memory_status(tmp_path: Path):
    repo, _, sale = _setup(tmp_path)
    stale = replace(sale)
    repo.update(sale)

    with pytest.raises(VersionConflictError):
        repo.cancel(stale)
    assert stale.status == "active"


def test_retry_after_reload_succeeds(tmp_path: Path):
    _, sales, sale = _setup(tmp_path)
    stale = replace(sale)
    sales.update(sale)

    with pytest.raises(VersionConflictError):
        sales.update(stale)

    fresh = sales.get_by_id(sale.id)
    fresh.total_discount = 5.0
    assert sales.update(fresh).version == 3
