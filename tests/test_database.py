"""
Tests for the transaction helper
"""

import pytest
from sqlalchemy.orm import Session

from stockledger.core.database import unit_of_work
from stockledger.core.exceptions import ConflictError, NotFoundError
from stockledger.models import Brand
from tests.conftest import OWNER_ID


class TestUnitOfWork:

    def test_commits_on_success(self, db_session: Session):
        with unit_of_work(db_session):
            db_session.add(Brand(owner_id=OWNER_ID, name="Polymaker"))

        db_session.rollback()
        assert db_session.query(Brand).filter(Brand.name == "Polymaker").count() == 1

    def test_rolls_back_on_error(self, db_session: Session):
        with pytest.raises(NotFoundError):
            with unit_of_work(db_session):
                db_session.add(Brand(owner_id=OWNER_ID, name="Elegoo"))
                db_session.flush()
                raise NotFoundError("gone")

        assert db_session.query(Brand).count() == 0

    def test_duplicate_becomes_conflict(self, db_session: Session, brand):
        """Test a unique index violation surfaces as ConflictError"""
        with pytest.raises(ConflictError):
            with unit_of_work(db_session):
                db_session.add(Brand(owner_id=OWNER_ID, name=brand.name))

        assert db_session.query(Brand).count() == 1
