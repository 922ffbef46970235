import pytest

from storeback.domain.errors import ValidationError
from storeback.domain.models import Sale, SaleItem


def _sale(**kw) -> Sale:
    data = dict(user_id=1, total_amount=100.0, payment_type="cash")
    data.update(kw)
    return Sale(**data)


def _item(**kw) -> SaleItem:
    data = dict(sale_id=1, product_id=1, quantity=2, unit_price=10.0, subtotal=19.5, discount=1.0, tax=0.5)
    data.update(kw)
    return SaleItem(**data)


def test_valid_sale_passes():
    _sale(client_id=3, total_discount=10.0, notes="ok").validate()


def test_sale_reports_every_structural_violation_at_once():
    sale = _sale(user_id=0, client_id=-2, total_amount=-1.0, payment_type="  ", status="pending", notes="x" * 501)

    with pytest.raises(ValidationError) as exc:
        sale.validate()

    fields = exc.value.fields
    for expected in ("user_id", "client_id", "total_amount", "payment_type", "status", "notes"):
        assert expected in fields
    assert "user_id: must be > 0" in str(exc.value)


def test_payment_type_length_is_capped():
    with pytest.raises(ValidationError, match="payment_type"):
        _sale(payment_type="c" * 51).validate()


def test_discount_cannot_exceed_total():
    with pytest.raises(ValidationError) as exc:
        _sale(total_amount=50.0, total_discount=50.01).validate()
    assert exc.value.fields == ["total_discount"]

    _sale(total_amount=50.0, total_discount=50.0).validate()


def test_business_rules_wait_for_structural_rules():
    with pytest.raises(ValidationError) as exc:
        _sale(user_id=0, total_amount=10.0, total_discount=20.0).validate()
    assert exc.value.fields == ["user_id"]


def test_item_subtotal_must_match_components():
    _item().validate()

    with pytest.raises(ValidationError) as exc:
        _item(subtotal=20.0).validate()
    assert exc.value.fields == ["subtotal"]


def test_item_subtotal_is_compared_at_cent_precision():
    # 3 * 0.1 is not exactly 0.3 in binary floating point
    _item(quantity=3, unit_price=0.1, discount=0.0, tax=0.0, subtotal=0.3).validate()


def test_item_structural_errors_are_aggregated():
    with pytest.raises(ValidationError) as exc:
        _item(sale_id=0, product_id=0, quantity=0, unit_price=-1.0, discount=-1.0, tax=-1.0, description="d" * 501).validate()
    assert set(exc.value.fields) == {"sale_id", "product_id", "quantity", "unit_price", "discount", "tax", "description"}


def test_item_without_sale_can_be_validated_for_batch_create():
    _item(sale_id=0).validate(require_sale=False)
