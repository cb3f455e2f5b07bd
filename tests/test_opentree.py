"""
Tests for the Open Tree of Life client (TNRS and induced subtrees).
"""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
import requests

from inat_phylo.datasources import opentree
from inat_phylo.datasources.opentree import tnrs
from inat_phylo.errors import InvalidArgument, RequestRejected, ServiceUnavailable, UnknownTaxa
from inat_phylo.schemas import TaxonMatch

# =============================================================================
# Fixtures / Sample API Responses
# =============================================================================

SAMPLE_MATCH_NAMES_RESPONSE: dict = {
    "context": "Birds",
    "governing_code": "ICZN",
    "includes_approximate_matches": False,
    "matched_names": ["Turdus migratorius"],
    "unmatched_names": ["Notarealbird"],
    "results": [
        {
            "name": "Turdus migratorius",
            "matches": [
                {
                    "matched_name": "Turdus migratorius",
                    "score": 1.0,
                    "is_approximate_match": False,
                    "is_synonym": False,
                    "nomenclature_code": "ICZN",
                    "search_string": "turdus migratorius",
                    "taxon": {
                        "ott_id": 1019567,
                        "name": "Turdus migratorius",
                        "unique_name": "Turdus migratorius",
                        "rank": "species",
                        "flags": [],
                        "is_suppressed": False,
                        "is_suppressed_from_synth": False,
                    },
                }
            ],
        }
    ],
}

SAMPLE_INDUCED_SUBTREE_RESPONSE: dict = {
    "newick": "((Turdus_migratorius,Cyanocitta_stelleri)Passeriformes)Aves;",
    "broken": {},
    "supporting_studies": ["ot_2019@tree4"],
}


def _response(body: dict) -> Mock:
    resp = Mock()
    resp.json.return_value = body
    resp.raise_for_status = Mock()
    return resp


def _rejected(status: int, body: dict | None) -> Mock:
    """Response whose raise_for_status fails like a real 4xx/5xx."""
    error_resp = Mock(status_code=status)
    if body is None:
        error_resp.json.side_effect = ValueError("not JSON")
    else:
        error_resp.json.return_value = body
    resp = Mock()
    resp.raise_for_status.side_effect = requests.HTTPError(
        f"{status} Client Error", response=error_resp
    )
    return resp


SAMPLE_NOT_FOUND_RESPONSE: dict = {
    "message": "[/v3/tree_of_life/induced_subtree] Error: node_id 'ott5264396' was not found!",
    "unknown": {"ott5264396": "pruned_ott_id"},
}


# =============================================================================
# Schemas
# =============================================================================


class TestTaxonMatch:
    """Test TNRS candidate parsing."""

    def test_from_api(self) -> None:
        match = TaxonMatch.from_api(SAMPLE_MATCH_NAMES_RESPONSE["results"][0]["matches"][0])
        assert match.ott_id == 1019567
        assert match.score == 1.0
        assert match.unique_name == "Turdus migratorius"
        assert match.rank == "species"
        assert match.in_synth_tree

    def test_suppressed_not_in_synth(self) -> None:
        match = TaxonMatch(
            matched_name="x", score=1.0, ott_id=1, unique_name="x", is_suppressed_from_synth=True
        )
        assert not match.in_synth_tree

    def test_excluding_flag_not_in_synth(self) -> None:
        match = TaxonMatch(
            matched_name="x", score=1.0, ott_id=1, unique_name="x", flags=["INCERTAE_SEDIS_INHERITED"]
        )
        assert not match.in_synth_tree

    @pytest.mark.parametrize(
        "flag",
        [
            "hybrid",
            "viral",
            "environmental",
            "unclassified",
            "hidden_inherited",
            "inconsistent",
            "merged",
        ],
    )
    def test_more_excluding_flags(self, flag: str) -> None:
        match = TaxonMatch(matched_name="x", score=1.0, ott_id=1, unique_name="x", flags=[flag])
        assert not match.in_synth_tree

    def test_harmless_flag_in_synth(self) -> None:
        match = TaxonMatch(
            matched_name="x", score=1.0, ott_id=1, unique_name="x", flags=["sibling_higher"]
        )
        assert match.in_synth_tree


# =============================================================================
# TNRS
# =============================================================================


class TestMatchNames:
    """Test name matching requests."""

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_request_body(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(SAMPLE_MATCH_NAMES_RESPONSE)
        opentree.match_names(["Turdus migratorius", "Notarealbird"], "Birds")

        url = mock_post.call_args.args[0]
        body = mock_post.call_args.kwargs["json"]
        assert url == "https://api.opentreeoflife.org/v3/tnrs/match_names"
        assert body == {
            "names": ["Turdus migratorius", "Notarealbird"],
            "context_name": "Birds",
            "do_approximate_matching": False,
        }

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_results_in_input_order(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(SAMPLE_MATCH_NAMES_RESPONSE)
        results = opentree.match_names(["Notarealbird", "Turdus migratorius"], "Birds")

        assert [r.name for r in results] == ["Notarealbird", "Turdus migratorius"]
        assert results[0].matches == []
        assert results[1].matches[0].ott_id == 1019567
        assert all(r.context == "Birds" for r in results)

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_batches_large_requests(
        self, mock_post: Mock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(tnrs, "MAX_NAMES_PER_REQUEST", 2)
        mock_post.return_value = _response({"results": []})
        results = opentree.match_names(["a", "b", "c", "d", "e"])

        assert mock_post.call_count == 3
        assert [c.kwargs["json"]["names"] for c in mock_post.call_args_list] == [
            ["a", "b"],
            ["c", "d"],
            ["e"],
        ]
        assert len(results) == 5

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_unreachable_service(self, mock_post: Mock) -> None:
        mock_post.side_effect = requests.ConnectionError("no route to host")
        with pytest.raises(ServiceUnavailable, match="tnrs/match_names"):
            opentree.match_names(["Turdus migratorius"])

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_resolver_protocol(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(SAMPLE_MATCH_NAMES_RESPONSE)
        resolver = opentree.OpenTreeNameResolver("https://example.org/v3")
        results = resolver.resolve(["Turdus migratorius"], "Birds")

        assert mock_post.call_args.args[0] == "https://example.org/v3/tnrs/match_names"
        assert results[0].matches[0].ott_id == 1019567


# =============================================================================
# Induced subtree
# =============================================================================


class TestInducedSubtree:
    """Test induced subtree requests."""

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_request_and_result(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(SAMPLE_INDUCED_SUBTREE_RESPONSE)
        subtree = opentree.induced_subtree([1019567, 1083721])

        assert mock_post.call_args.args[0].endswith("/tree_of_life/induced_subtree")
        assert mock_post.call_args.kwargs["json"] == {
            "ott_ids": [1019567, 1083721],
            "label_format": "name",
        }
        assert subtree.newick == SAMPLE_INDUCED_SUBTREE_RESPONSE["newick"]
        assert subtree.label_format == "name"
        assert subtree.broken == {}

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_broken_taxa_kept(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(
            {"newick": "(a,b);", "broken": {"ott99": "mrcaott1ott2"}}
        )
        subtree = opentree.induced_subtree([1, 2, 99], label_format="id")
        assert subtree.broken == {"ott99": "mrcaott1ott2"}

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_empty_ids(self, mock_post: Mock) -> None:
        with pytest.raises(InvalidArgument):
            opentree.induced_subtree([])
        mock_post.assert_not_called()

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_bad_label_format(self, mock_post: Mock) -> None:
        with pytest.raises(InvalidArgument, match="label_format"):
            opentree.induced_subtree([1, 2], label_format="scientific")  # type: ignore[arg-type]
        mock_post.assert_not_called()

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_http_error(self, mock_post: Mock) -> None:
        resp = _response({})
        resp.raise_for_status.side_effect = requests.HTTPError("400 Bad Request")
        mock_post.return_value = resp
        with pytest.raises(ServiceUnavailable):
            opentree.induced_subtree([1, 2])

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_missing_newick(self, mock_post: Mock) -> None:
        mock_post.return_value = _response({"broken": {}})
        with pytest.raises(ServiceUnavailable, match="no newick"):
            opentree.induced_subtree([1, 2])

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_single_id(self, mock_post: Mock) -> None:
        with pytest.raises(InvalidArgument, match="at least 2"):
            opentree.induced_subtree([1019567])
        mock_post.assert_not_called()

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_ids_missing_from_tree(self, mock_post: Mock) -> None:
        mock_post.return_value = _rejected(400, SAMPLE_NOT_FOUND_RESPONSE)
        with pytest.raises(UnknownTaxa) as excinfo:
            opentree.induced_subtree([1019567, 5264396, 1083721])
        assert excinfo.value.ott_ids == [5264396]

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_other_client_error(self, mock_post: Mock) -> None:
        mock_post.return_value = _rejected(400, {"message": "label_format is invalid"})
        with pytest.raises(RequestRejected) as excinfo:
            opentree.induced_subtree([1, 2])
        assert excinfo.value.status == 400
        assert not isinstance(excinfo.value, UnknownTaxa)

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_server_error_without_json(self, mock_post: Mock) -> None:
        mock_post.return_value = _rejected(503, None)
        with pytest.raises(ServiceUnavailable) as excinfo:
            opentree.induced_subtree([1, 2])
        assert not isinstance(excinfo.value, RequestRejected)


class TestUnknownOttIds:
    """Test reading refused ids out of an error body."""

    def test_unknown_mapping(self) -> None:
        payload = {"unknown": {"ott3": "pruned_ott_id", "mrcaott1ott2": "x"}}
        assert opentree.unknown_ott_ids(payload) == [3]

    def test_message_only(self) -> None:
        payload = {"message": "Error: node_id 'ott42' was not found!"}
        assert opentree.unknown_ott_ids(payload) == [42]

    def test_both_deduplicated(self) -> None:
        assert opentree.unknown_ott_ids(SAMPLE_NOT_FOUND_RESPONSE) == [5264396]

    def test_nothing_named(self) -> None:
        assert opentree.unknown_ott_ids({"message": "bad request"}) == []


# =============================================================================
# Timeouts
# =============================================================================


class TestTimeouts:
    """Configured timeouts reach the Open Tree requests."""

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_resolver_timeout(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(SAMPLE_MATCH_NAMES_RESPONSE)
        opentree.OpenTreeNameResolver(timeout=4.0).resolve(["Turdus migratorius"], "Birds")
        assert mock_post.call_args.kwargs["timeout"] == 4.0

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_provider_timeout(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(SAMPLE_INDUCED_SUBTREE_RESPONSE)
        opentree.OpenTreeSubtreeProvider(timeout=4.0).induced_subtree([1, 2], "name")
        assert mock_post.call_args.kwargs["timeout"] == 4.0

    @patch("inat_phylo.datasources.opentree.client.session.post")
    def test_default_timeout(self, mock_post: Mock) -> None:
        mock_post.return_value = _response(SAMPLE_INDUCED_SUBTREE_RESPONSE)
        opentree.induced_subtree([1, 2])
        assert mock_post.call_args.kwargs["timeout"] == 30
