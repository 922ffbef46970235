import pytest

from storeback.domain.errors import InvalidTransitionError, NotFoundError, ValidationError, ZeroIDError
from storeback.domain.models import Sale
from storeback.domain.status import TRANSITIONS, SaleAction, SaleStatus, can_transition, next_status
from storeback.services.sales_service import SaleService

OPERATIONS = {
    "cancel": SaleAction.CANCEL,
    "complete": SaleAction.COMPLETE,
    "mark_returned": SaleAction.RETURN,
    "activate": SaleAction.ACTIVATE,
}


class RecordingSaleRepo:
    """Holds one sale in memory and records every write it is asked to do."""

    def __init__(self, status: str):
        self.sale = Sale(id=7, user_id=1, total_amount=10.0, payment_type="cash", status=status, version=3)
        self.calls: list[str] = []

    def get_by_id(self, sale_id):
        if sale_id != self.sale.id:
            raise NotFoundError(f"sale {sale_id} not found")
        return self.sale

    def _persist(self, name, status):
        self.calls.append(name)
        self.sale.status = status.value
        self.sale.version += 1
        return self.sale

    def cancel(self, sale):
        return self._persist("cancel", SaleStatus.CANCELED)

    def complete(self, sale):
        return self._persist("complete", SaleStatus.COMPLETED)

    def mark_returned(self, sale):
        return self._persist("mark_returned", SaleStatus.RETURNED)

    def activate(self, sale):
        return self._persist("activate", SaleStatus.ACTIVE)


def test_transition_table_matches_lifecycle():
    assert TRANSITIONS[SaleAction.CANCEL].sources == {SaleStatus.ACTIVE}
    assert TRANSITIONS[SaleAction.COMPLETE].sources == {SaleStatus.ACTIVE}
    assert TRANSITIONS[SaleAction.RETURN].sources == {SaleStatus.COMPLETED}
    assert TRANSITIONS[SaleAction.ACTIVATE].sources == {SaleStatus.CANCELED, SaleStatus.RETURNED}


def test_transition_table_is_read_only():
    with pytest.raises(TypeError):
        TRANSITIONS[SaleAction.CANCEL] = TRANSITIONS[SaleAction.ACTIVATE]


@pytest.mark.parametrize("operation", sorted(OPERATIONS))
@pytest.mark.parametrize("status", [s.value for s in SaleStatus])
def test_every_operation_from_every_status(operation, status):
    repo = RecordingSaleRepo(status)
    service = SaleService(repo)
    action = OPERATIONS[operation]

    if can_transition(status, action):
        saved = getattr(service, operation)(7)
        assert saved.status == TRANSITIONS[action].target.value
        assert repo.calls == [operation]
        assert saved.version == 4
    else:
        with pytest.raises(ValidationError) as exc:
            getattr(service, operation)(7)
        assert isinstance(exc.value, InvalidTransitionError)
        assert repo.sale.status == status
        assert repo.sale.version == 3
        assert repo.calls == []


def test_illegal_cancel_names_the_rule():
    with pytest.raises(InvalidTransitionError, match="only active sales can be canceled"):
        next_status("completed", SaleAction.CANCEL)


@pytest.mark.parametrize("operation", sorted(OPERATIONS))
def test_transitions_reject_non_positive_id(operation):
    repo = RecordingSaleRepo("active")
    with pytest.raises(ZeroIDError):
        getattr(SaleService(repo), operation)(0)
    assert repo.calls == []


def test_transition_on_missing_sale_is_not_found():
    repo = RecordingSaleRepo("active")
    with pytest.raises(NotFoundError):
        SaleService(repo).cancel(99)
    assert repo.calls == []
