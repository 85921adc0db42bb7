"""ProductWizard controller tests (explicit session payloads, no HTTP)."""

import copy

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from product_wizard.middleware.exceptions import ResourceNotFoundError
from product_wizard.models.product import Product
from product_wizard.services.wizard import SESSION_NAMESPACE, ProductWizard


@pytest.fixture
def wizard() -> ProductWizard:
    return ProductWizard()


def _session(**values) -> dict:
    draft = {"name": "", "price": "", "category": ""}
    draft.update(values)
    return {SESSION_NAMESPACE: {"product": draft}, "flash": "kept"}


@pytest.mark.unit
class TestStartAndShow:

    def test_start_creates_empty_draft(self, wizard):
        session, first_step = wizard.start({"flash": "kept"})

        assert first_step == "add_name"
        assert session == {
            "flash": "kept",
            SESSION_NAMESPACE: {"product": {"name": "", "price": "", "category": ""}},
        }

    def test_start_resets_existing_draft(self, wizard):
        session, _ = wizard.start(_session(name="Old"))

        assert session[SESSION_NAMESPACE]["product"]["name"] == ""

    def test_show_returns_draft_and_step(self, wizard):
        view = wizard.show("add_price", _session(name="Widget"))

        assert view.step == "add_price"
        assert view.steps == ["add_name", "add_price", "add_category"]
        assert view.product.name == "Widget"
        assert not view.is_last_step
        assert view.errors == []

    @pytest.mark.parametrize("session", [None, {}, {SESSION_NAMESPACE: "garbage"}, {SESSION_NAMESPACE: {}}])
    def test_show_tolerates_missing_session(self, wizard, session):
        view = wizard.show("add_name", session)

        assert view.product.name == ""

    def test_show_unknown_step(self, wizard):
        with pytest.raises(ResourceNotFoundError):
            wizard.show("add_colour", _session())


@pytest.mark.unit
@pytest.mark.asyncio
class TestUpdate:

    async def test_valid_step_advances_and_stores_draft(self, wizard, db_session):
        session = _session()
        received = copy.deepcopy(session)

        outcome = await wizard.update(db_session, "add_name", {"name": "Widget"}, session)

        assert outcome.next_step == "add_price"
        assert outcome.view is None
        assert not outcome.complete
        assert outcome.session[SESSION_NAMESPACE]["product"]["name"] == "Widget"
        assert outcome.session["flash"] == "kept"
        assert session == received

    async def test_blank_name_errors_on_name_only(self, wizard, db_session):
        session = _session()

        outcome = await wizard.update(db_session, "add_name", {"name": ""}, session)

        assert outcome.next_step is None
        assert [e.field for e in outcome.view.errors] == ["name"]
        assert outcome.session == session

    async def test_resubmitting_price_leaves_other_fields(self, wizard, db_session):
        session = _session(name="Widget", price="9.99", category="Tools")

        outcome = await wizard.update(db_session, "add_price", {"price": "12.50"}, session)

        assert outcome.session[SESSION_NAMESPACE]["product"] == {
            "name": "Widget",
            "price": "12.50",
            "category": "Tools",
        }

    async def test_last_step_commits_and_clears_draft(self, wizard, db_session: AsyncSession):
        session = _session(name="Widget", price="9.99")

        outcome = await wizard.update(db_session, "add_category", {"category": "Tools"}, session)

        assert outcome.complete
        assert SESSION_NAMESPACE not in outcome.session
        assert outcome.session["flash"] == "kept"
        assert outcome.record.category == "Tools"
        count = await db_session.scalar(select(func.count(Product.id)))
        assert count == 1

    async def test_last_step_with_earlier_gaps_goes_back(self, wizard, db_session: AsyncSession):
        session = _session(name="Widget")

        outcome = await wizard.update(db_session, "add_category", {"category": "Tools"}, session)

        assert not outcome.complete
        assert outcome.next_step == "add_price"
        assert outcome.session[SESSION_NAMESPACE]["product"]["category"] == "Tools"
        count = await db_session.scalar(select(func.count(Product.id)))
        assert count == 0

    async def test_persistence_failure_keeps_draft(
        self, wizard, db_session: AsyncSession, monkeypatch
    ):
        async def failing_flush(self, *args, **kwargs):
            raise IntegrityError("INSERT INTO products", {}, Exception("constraint failed"))

        monkeypatch.setattr(AsyncSession, "flush", failing_flush)
        session = _session(name="Widget", price="9.99")

        outcome = await wizard.update(db_session, "add_category", {"category": "Tools"}, session)

        assert not outcome.complete
        assert outcome.session == session
        assert outcome.view.step == "add_category"
        assert outcome.view.product.category == "Tools"
        assert [(e.field, e.code) for e in outcome.view.errors] == [("category", "INTEGRITY_ERROR")]

    async def test_update_unknown_step(self, wizard, db_session):
        with pytest.raises(ResourceNotFoundError):
            await wizard.update(db_session, "add_colour", {"name": "x"}, _session())
