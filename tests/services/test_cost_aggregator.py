"""Tests for CostAggregator (clinic_kernel/services/cost_aggregator.py)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from clinic_kernel.domain.values import LineItemKind
from clinic_kernel.exceptions import ConsultationNotFoundError
from clinic_kernel.models.consultation import Consultation
from clinic_kernel.services.cost_aggregator import CostAggregator


@pytest.fixture
def aggregator(session) -> CostAggregator:
    return CostAggregator(session)


class TestRecompute:

    def test_recomputes_from_rows(self, aggregator, session, service, open_consultation, ibuprofen):
        cid = open_consultation(fee="100")
        service.add_line_item(cid, LineItemKind.MEDICATION, ibuprofen.id, 2)
        service.add_extra_charge(cid, "Injection", "15")

        consultation = session.get(Consultation, cid)
        consultation.total = Decimal("1.00")
        assert aggregator.recompute(consultation) == Decimal("140.00")
        assert consultation.total == Decimal("140.00")

    def test_no_fee_no_rows(self, aggregator, open_consultation, session):
        consultation = session.get(Consultation, open_consultation())
        assert aggregator.recompute(consultation) == Decimal("0.00")


class TestBreakdown:

    def test_components(self, aggregator, service, open_consultation, ibuprofen, gauze):
        cid = open_consultation(fee="100")
        service.add_line_item(cid, LineItemKind.MEDICATION, ibuprofen.id, 1)
        service.add_line_item(cid, LineItemKind.TRIAGE_MATERIAL, gauze.id, 2)
        service.add_extra_charge(cid, "Nebulization", "30")

        breakdown = aggregator.breakdown(cid)

        assert breakdown.consultation_fee == Decimal("100.00")
        assert breakdown.line_items == Decimal("18.50")
        assert breakdown.extras == Decimal("30.00")
        assert breakdown.total == Decimal("148.50")

    def test_unknown_consultation(self, aggregator):
        with pytest.raises(ConsultationNotFoundError):
            aggregator.breakdown(uuid4())
