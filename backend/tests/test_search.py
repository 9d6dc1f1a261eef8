"""Tests for term matching and relevance ranking."""
from sqlalchemy import func

from materix.models.user import User
from materix.services.search import search_terms, text_search


def _add(db, name, email):
    db.add(User(name=name, email=email, avatar_url=""))
    db.commit()


class TestSearch:

    def test_terms_are_lowercased_and_split(self):
        assert search_terms("  Alice  SMITH ") == ["alice", "smith"]
        assert search_terms(None) == []

    def test_blank_query_has_no_rank(self, db):
        _add(db, "Alice", "alice@example.com")
        condition, rank = text_search("   ", User.name, User.email)
        assert rank is None
        assert db.query(User).filter(condition).count() == 1

    def test_every_term_must_match(self, db):
        _add(db, "Alice Smith", "alice@example.com")
        _add(db, "Alice Jones", "aj@example.com")
        condition, _ = text_search("alice smith", User.name, User.email)
        names = [u.name for u in db.query(User).filter(condition)]
        assert names == ["Alice Smith"]

    def test_exact_outranks_prefix_and_substring(self, db):
        _add(db, "Malicea", "m@example.com")
        _add(db, "Alice", "a@example.com")
        _add(db, "Alicent", "b@example.com")
        condition, rank = text_search("alice", User.name)
        names = [u.name for u in db.query(User).filter(condition).order_by(rank.desc(), User.id)]
        assert names == ["Alice", "Alicent", "Malicea"]

    def test_like_wildcards_are_literal(self, db):
        _add(db, "100% real", "pct@example.com")
        _add(db, "1000 fake", "other@example.com")
        condition, _ = text_search("100%", User.name)
        assert db.query(func.count(User.id)).filter(condition).scalar() == 1
