"""
Unit tests for Company and User DAOs.
"""

import pytest
from datetime import date

from renewal.dao.company import CompanyDAO
from renewal.dao.user import UserDAO
from tests.factories import CompanyFactory, UserFactory


class TestCompanyDAO:
    @pytest.mark.asyncio
    async def test_extend_due_date(self, db_session, test_company):
        dao = CompanyDAO(db_session)

        updated = await dao.extend_due_date(test_company.id, date(2024, 7, 1))

        assert updated.id == test_company.id
        assert updated.due_date == date(2024, 7, 1)

    @pytest.mark.asyncio
    async def test_extend_due_date_missing_company(self, db_session):
        assert await CompanyDAO(db_session).extend_due_date(999, date(2024, 7, 1)) is None

    @pytest.mark.asyncio
    async def test_extend_due_date_refreshes_loaded_company(self, db_session):
        company = await CompanyFactory.create(db_session, due_date=date(2024, 1, 1))

        updated = await CompanyDAO(db_session).extend_due_date(company.id, date(2024, 1, 31))

        assert updated is company
        assert company.due_date == date(2024, 1, 31)

    @pytest.mark.asyncio
    async def test_get_by_id(self, db_session, test_company):
        found = await CompanyDAO(db_session).get_by_id(test_company.id)
        assert found.name == "Acme Ltda"


class TestUserDAO:
    @pytest.mark.asyncio
    async def test_get_active(self, db_session, test_company):
        user = await UserFactory.create(db_session, company_id=test_company.id)

        assert (await UserDAO(db_session).get_active(user.id)).id == user.id

    @pytest.mark.asyncio
    async def test_inactive_user_is_hidden(self, db_session, test_company):
        user = await UserFactory.create(db_session, company_id=test_company.id, is_active=False)

        assert await UserDAO(db_session).get_active(user.id) is None
