"""
Hypothesis-based fuzzing of consultation ledgers.

Random sequences of add/remove/extra/fee/cancel operations run against a
private in-memory database.  After every operation:

- no item's stock is negative
- stock + quantity held by live line items == initial stock, per item
- the stored total == fee + sum(line subtotals) + sum(extra amounts)
- a rejected operation changes nothing
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from clinic_kernel.db.engine import create_clinic_engine, create_tables
from clinic_kernel.domain.clock import DeterministicClock
from clinic_kernel.domain.values import ItemCategory, LineItemKind
from clinic_kernel.models.consultation import Consultation
from clinic_kernel.models.inventory import InventoryItem
from clinic_kernel.models.ledger import ExtraCharge, LineItem, LineItemDecrement
from clinic_kernel.models.procedure import ProcedureComponent, ProcedureDefinition, ProcedureFee
from clinic_kernel.services.consultation_service import ConsultationService

INITIAL_STOCK = {
    "ibuprofen": Decimal("6"),
    "gauze": Decimal("5"),
    "antiseptic": Decimal("2"),
}

quantities = st.decimals(min_value=Decimal("0.5"), max_value=Decimal("4"), places=1)
amounts = st.decimals(min_value=Decimal("0"), max_value=Decimal("500"), places=2)

operations = st.lists(
    st.one_of(
        st.tuples(st.just("add_item"), st.sampled_from(sorted(INITIAL_STOCK)), quantities),
        st.tuples(st.just("add_procedure"), st.integers(min_value=1, max_value=3)),
        st.tuples(st.just("remove_line"), st.integers(min_value=0, max_value=20)),
        st.tuples(st.just("add_extra"), amounts),
        st.tuples(st.just("remove_extra"), st.integers(min_value=0, max_value=20)),
        st.tuples(st.just("set_fee"), st.one_of(st.none(), amounts)),
    ),
    min_size=1,
    max_size=25,
)


def _seed(session):
    items = {
        code: InventoryItem(
            code=code,
            category=ItemCategory.MEDICATION.value,
            name=code.title(),
            unit="unit",
            quantity=qty,
            unit_cost=Decimal("3.35"),
            is_active=True,
        )
        for code, qty in INITIAL_STOCK.items()
    }
    session.add_all(items.values())
    session.flush()
    procedure = ProcedureDefinition(
        code="dressing",
        description="Dressing",
        is_active=True,
        components=[
            ProcedureComponent(item_id=items["gauze"].id, quantity=Decimal("1.5"), position=0),
            ProcedureComponent(item_id=items["antiseptic"].id, quantity=Decimal("0.5"), position=1),
        ],
        fees=[ProcedureFee(responsible_party="nurse", fee=Decimal("45.00"), position=0)],
    )
    session.add(procedure)
    session.commit()
    return {code: item.id for code, item in items.items()}, procedure.id


def _snapshot(session, consultation_id):
    session.expire_all()
    stock = dict(session.execute(select(InventoryItem.code, InventoryItem.quantity)).all())
    held: dict[str, Decimal] = {}
    rows = session.execute(
        select(InventoryItem.code, LineItemDecrement.quantity)
        .join(InventoryItem, InventoryItem.id == LineItemDecrement.item_id)
    ).all()
    for code, qty in rows:
        held[code] = held.get(code, Decimal(0)) + qty
    consultation = session.get(Consultation, consultation_id)
    subtotals = session.execute(
        select(LineItem.subtotal).where(LineItem.consultation_id == consultation_id)
    ).scalars().all()
    extras = session.execute(
        select(ExtraCharge.amount).where(ExtraCharge.consultation_id == consultation_id)
    ).scalars().all()
    return stock, held, consultation, list(subtotals), list(extras)


def _check_invariants(session, consultation_id):
    stock, held, consultation, subtotals, extras = _snapshot(session, consultation_id)
    for code, initial in INITIAL_STOCK.items():
        assert stock[code] >= 0
        assert stock[code] + held.get(code, Decimal(0)) == initial
    expected = (consultation.consultation_fee or Decimal(0)) + sum(subtotals) + sum(extras)
    assert consultation.total == expected
    return stock, consultation.total


@settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
@given(ops=operations, cancel_at_end=st.booleans())
def test_random_ledger_operations_preserve_invariants(ops, cancel_at_end):
    engine = create_clinic_engine("sqlite://")
    try:
        create_tables(engine)
        session = sessionmaker(bind=engine, expire_on_commit=False)()
        items, procedure_id = _seed(session)
        service = ConsultationService(session, clock=DeterministicClock())
        cid = service.open_consultation("patient-1", "dr-ramos", consultation_fee="150").consultation_id

        line_ids = []
        extra_ids = []
        for op in ops:
            before = _check_invariants(session, cid)
            kind = op[0]
            if kind == "add_item":
                result = service.add_line_item(cid, LineItemKind.MEDICATION, items[op[1]], op[2])
                if result.is_success:
                    line_ids.append(result.line_item_id)
            elif kind == "add_procedure":
                result = service.add_line_item(cid, LineItemKind.PROCEDURE, procedure_id, op[1])
                if result.is_success:
                    line_ids.append(result.line_item_id)
            elif kind == "remove_line":
                if not line_ids:
                    continue
                result = service.remove_line_item(line_ids.pop(op[1] % len(line_ids)))
            elif kind == "add_extra":
                result = service.add_extra_charge(cid, "Service", op[1])
                if result.is_success:
                    extra_ids.append(result.extra_charge_id)
            elif kind == "remove_extra":
                if not extra_ids:
                    continue
                result = service.remove_extra_charge(extra_ids.pop(op[1] % len(extra_ids)))
            else:
                result = service.set_consultation_fee(cid, op[1])

            after = _check_invariants(session, cid)
            if not result.is_success:
                assert after == before
            else:
                assert result.total == after[1]

        if cancel_at_end:
            assert service.cancel(cid).is_success
            stock, total = _check_invariants(session, cid)
            assert stock == INITIAL_STOCK
            fee = session.get(Consultation, cid).consultation_fee
            assert total == (fee or Decimal(0))
        session.close()
    finally:
        engine.dispose()
