from drivefile.models.drive import SearchPredicate
from drivefile.query import build_search_query


class TestTrashedClause:
    def test_empty_predicate_excludes_trashed(self):
        assert build_search_query(SearchPredicate()) == "trashed=false"

    def test_default_never_includes_trashed_true(self):
        q = build_search_query(SearchPredicate(query="notes", parent_id="abc"))
        assert "trashed=false" in q
        assert "trashed=true" not in q

    def test_explicit_true_overrides_default(self):
        q = build_search_query(SearchPredicate(trashed=True))
        assert "trashed=true" in q
        assert "trashed=false" not in q

    def test_explicit_false_emitted_once(self):
        q = build_search_query(SearchPredicate(trashed=False))
        assert q.count("trashed=") == 1


class TestClauses:
    def test_name_contains(self):
        q = build_search_query(SearchPredicate(query="report"))
        assert "name contains 'report'" in q

    def test_mime_type(self):
        assert build_search_query(SearchPredicate(mime_type="a/b")) == "mimeType='a/b' and trashed=false"

    def test_parent_membership(self):
        q = build_search_query(SearchPredicate(parent_id="abc123"))
        assert "'abc123' in parents" in q

    def test_clause_order(self):
        q = build_search_query(SearchPredicate(query="data", mime_type="text/plain", parent_id="fld"))
        assert q == "mimeType='text/plain' and 'fld' in parents and name contains 'data' and trashed=false"

    def test_empty_strings_are_skipped(self):
        assert build_search_query(SearchPredicate(query="", mime_type="")) == "trashed=false"


class TestEscaping:
    def test_escapes_quote_in_query(self):
        q = build_search_query(SearchPredicate(query="it's"))
        assert "name contains 'it\\'s'" in q

    def test_escapes_every_quote(self):
        q = build_search_query(SearchPredicate(query="a'b'c"))
        assert "name contains 'a\\'b\\'c'" in q

    def test_injection_via_mime_type_is_neutralised(self):
        value = "text/plain' or name contains 'secret"
        q = build_search_query(SearchPredicate(mime_type=value))
        assert value not in q
        assert "mimeType='text/plain\\' or name contains \\'secret'" in q

    def test_escapes_parent_id(self):
        q = build_search_query(SearchPredicate(parent_id="x' in parents or 'y"))
        assert "'x\\' in parents or \\'y' in parents" in q
