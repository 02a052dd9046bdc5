"""
Tests for ProcedureCatalog (clinic_kernel/services/procedure_catalog.py).
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from clinic_kernel.domain.dtos import LeafDecrement
from clinic_kernel.exceptions import UnknownProcedureError
from clinic_kernel.services.procedure_catalog import ProcedureCatalog


@pytest.fixture
def catalog(session) -> ProcedureCatalog:
    return ProcedureCatalog(session)


class TestExpand:

    def test_one_leaf_per_component(self, catalog, suture_kit, gauze, antiseptic):
        leaves = catalog.expand(suture_kit.id, Decimal("1"))
        assert set(leaves) == {
            LeafDecrement(gauze.id, Decimal("2")),
            LeafDecrement(antiseptic.id, Decimal("1")),
        }

    def test_multiplier_scales_every_component(self, catalog, suture_kit, gauze, antiseptic):
        leaves = {leaf.item_id: leaf.quantity for leaf in catalog.expand(suture_kit.id, Decimal("3"))}
        assert leaves[gauze.id] == Decimal("6")
        assert leaves[antiseptic.id] == Decimal("3")

    def test_duplicate_components_are_merged(self, catalog, make_procedure, gauze):
        procedure = make_procedure(
            "double-dressing",
            components=[(gauze, "1"), (gauze, "0.5")],
            fees=[("nurse", "20.00")],
        )
        assert catalog.expand(procedure.id, Decimal("2")) == [
            LeafDecrement(gauze.id, Decimal("3")),
        ]

    def test_procedure_without_components(self, catalog, make_procedure):
        consult_only = make_procedure("counselling", components=[], fees=[("physician", "80.00")])
        assert catalog.expand(consult_only.id, Decimal("1")) == []

    def test_edited_definition_is_seen_immediately(
        self, catalog, session, suture_kit, gauze,
    ):
        catalog.expand(suture_kit.id, Decimal("1"))
        for component in suture_kit.components:
            if component.item_id == gauze.id:
                component.quantity = Decimal("4")
        session.commit()

        leaves = {leaf.item_id: leaf.quantity for leaf in catalog.expand(suture_kit.id, Decimal("1"))}
        assert leaves[gauze.id] == Decimal("4")


class TestUnitPrice:

    def test_sum_of_fee_schedule(self, catalog, suture_kit):
        assert catalog.unit_price(suture_kit.id) == Decimal("150.00")

    def test_no_fees_is_free(self, catalog, make_procedure, gauze):
        procedure = make_procedure("bandage", components=[(gauze, "1")], fees=[])
        assert catalog.unit_price(procedure.id) == Decimal("0.00")


class TestLookup:

    def test_unknown_procedure(self, catalog):
        with pytest.raises(UnknownProcedureError) as exc_info:
            catalog.expand(uuid4(), Decimal("1"))
        assert exc_info.value.code == "UNKNOWN_PROCEDURE"

    def test_inactive_procedure(self, catalog, make_procedure, gauze):
        retired = make_procedure(
            "old-dressing", components=[(gauze, "1")], fees=[], is_active=False,
        )
        with pytest.raises(UnknownProcedureError) as exc_info:
            catalog.get_definition(retired.id)
        assert exc_info.value.reason == "inactive"
