"""Tests for Filters, sort safelisting and page metadata."""
import pytest
from sqlalchemy import func

from materix.models.user import User
from materix.pagination import Filters, calculate_meta, paginate, validate_filters
from materix.validator import Validator

SAFELIST = ("id", "name", "-id", "-name")


class TestFilters:

    def test_offset_and_limit(self):
        f = Filters(page=3, page_size=20, sort="id", sort_safelist=SAFELIST)
        assert f.limit() == 20
        assert f.offset() == 40

    def test_descending_prefix(self):
        f = Filters(sort="-name", sort_safelist=SAFELIST)
        assert f.sort_column() == "name"
        assert f.is_descending()

    def test_unsafe_sort_refused(self):
        f = Filters(sort="password_hash", sort_safelist=SAFELIST)
        with pytest.raises(ValueError):
            f.sort_column()

    @pytest.mark.parametrize("page,page_size,sort,field", [
        (0, 20, "id", "page"),
        (10_000_001, 20, "id", "page"),
        (1, 0, "id", "page_size"),
        (1, 101, "id", "page_size"),
        (1, 20, "email", "sort"),
    ])
    def test_validate_filters(self, page, page_size, sort, field):
        v = Validator()
        validate_filters(v, Filters(page=page, page_size=page_size, sort=sort, sort_safelist=SAFELIST))
        assert list(v.errors) == [field]

    def test_validate_filters_accepts_bounds(self):
        v = Validator()
        validate_filters(v, Filters(page=10_000_000, page_size=100, sort="-id", sort_safelist=SAFELIST))
        assert v.valid()


class TestMeta:

    def test_calculate_meta(self):
        meta = calculate_meta(45, 2, 20)
        assert meta.model_dump() == {
            "current_page": 2,
            "page_size": 20,
            "first_page": 1,
            "last_page": 3,
            "total_records": 45,
        }

    def test_exact_multiple(self):
        assert calculate_meta(40, 1, 20).last_page == 2

    def test_empty(self):
        assert calculate_meta(0, 1, 20).model_dump() == {
            "current_page": 0,
            "page_size": 0,
            "first_page": 0,
            "last_page": 0,
            "total_records": 0,
        }


class TestPaginate:

    def test_window_count_matches_total(self, db):
        db.add_all([User(name=f"user{i:02d}", email=f"user{i}@example.com") for i in range(7)])
        db.commit()

        f = Filters(page=2, page_size=3, sort="-name", sort_safelist=SAFELIST)
        q = db.query(func.count().over(), User).order_by(f.order_by({"id": User.id, "name": User.name}))
        rows, meta = paginate(q, f)

        assert [user.name for _, user in rows] == ["user03", "user02", "user01"]
        assert meta.total_records == 7
        assert meta.last_page == 3
