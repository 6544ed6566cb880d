"""
Tests for batch verification: pre-filter, batching, accept policy,
failure isolation and ranking.
"""
import asyncio

import pytest

from conftest import FakeFetcher, FakeLLM, classifier, make_candidate, prompt_candidates
from stylist_service.core.errors import ParseError, RemoteFailure
from stylist_service.core.models import StockStatus
from stylist_service.llm.batch_verifier import BatchVerifier, link_prefilter_reason, parse_verdicts


def run_verify(llm, candidates, settings, context, fetcher=None, category="Dress"):
    verifier = BatchVerifier(llm, fetcher or FakeFetcher(), settings)
    return asyncio.run(verifier.verify(candidates, category, context))


class TestPrefilter:
    """Local link checks happen before any remote call."""

    @pytest.mark.parametrize("link", ["ftp://shop.example.com/a", "shop.example.com/item", "", "javascript:void(0)"])
    def test_malformed_links(self, link):
        assert link_prefilter_reason(link) == "malformed link"

    @pytest.mark.parametrize("link", ["https://www.pinterest.com/pin/1", "https://instagram.com/p/abc"])
    def test_social_domains(self, link):
        assert link_prefilter_reason(link) is not None

    def test_valid_link(self):
        assert link_prefilter_reason("https://shop.example.com/dress/1") is None

    def test_unschemed_candidates_never_reach_classifier(self, settings, context):
        llm = FakeLLM([classifier()])
        candidates = [make_candidate(1, link="www.shop.example.com/item-1"), make_candidate(2)]
        result = run_verify(llm, candidates, settings, context)

        names = [c["name"] for prompt in llm.prompts for c in prompt_candidates(prompt)]
        assert names == ["Dress Item 2"]
        assert [item.name for item in result.items] == ["Dress Item 2"]
        assert any("Pre-filter rejected 'Dress Item 1'" in log for log in result.logs)

    def test_all_filtered_means_no_call(self, settings, context):
        llm = FakeLLM([classifier()])
        result = run_verify(llm, [make_candidate(1, link="https://pinterest.com/pin/1")], settings, context)
        assert llm.calls == 0
        assert result.items == []


class TestBatching:
    """Batches of five, one classification call each."""

    def test_one_call_per_batch(self, settings, context):
        llm = FakeLLM([classifier()])
        candidates = [make_candidate(i) for i in range(1, 13)]
        run_verify(llm, candidates, settings, context)

        assert llm.calls == 3
        assert [len(prompt_candidates(p)) for p in llm.prompts] == [5, 5, 2]

    def test_fetch_failure_falls_back_to_snippet(self, settings, context):
        candidates = [make_candidate(1), make_candidate(2)]
        fetcher = FakeFetcher({
            candidates[0].link: "Add to cart $50 Lovely dress in stock",
            candidates[1].link: RuntimeError("connection reset"),
        })
        llm = FakeLLM([classifier()])
        result = run_verify(llm, candidates, settings, context, fetcher=fetcher)

        entries = prompt_candidates(llm.prompts[0])
        assert entries[0]["contentSource"] == "live"
        assert entries[1]["contentSource"] == "snippet"
        assert entries[1]["contentSample"] == candidates[1].snippet
        assert {item.content_source for item in result.items} == {"live", "snippet"}

    def test_content_sample_truncated(self, settings, context):
        candidate = make_candidate(1)
        fetcher = FakeFetcher({candidate.link: "x" * 5000})
        llm = FakeLLM([classifier()])
        run_verify(llm, [candidate], settings, context, fetcher=fetcher)

        assert len(prompt_candidates(llm.prompts[0])[0]["contentSample"]) == settings.content_sample_chars


class TestAcceptPolicy:
    """Keep iff valid and not UNAVAILABLE."""

    def test_unavailable_rejected_uncertain_kept(self, settings, context):
        llm = FakeLLM([classifier({
            "Dress Item 1": {"stockStatus": "UNAVAILABLE", "reason": "Sold out"},
            "Dress Item 2": {"stockStatus": "UNCERTAIN"},
            "Dress Item 3": {"isValidProductPage": False, "reason": "Category page"},
        })])
        result = run_verify(llm, [make_candidate(i) for i in range(1, 5)], settings, context)

        by_name = {item.name: item for item in result.items}
        assert set(by_name) == {"Dress Item 2", "Dress Item 4"}
        assert by_name["Dress Item 2"].stock_status == StockStatus.UNCERTAIN
        assert by_name["Dress Item 2"].stock_status.label == "RISK"
        assert by_name["Dress Item 4"].stock_status.label == "IN STOCK"
        assert any("Dress Item 1" in log and "Sold out" in log for log in result.logs)
        assert any("Dress Item 3" in log and "not a product page" in log for log in result.logs)

    def test_defaults_and_fallback_link(self, settings, context):
        llm = FakeLLM([classifier({"Dress Item 1": {"matchScore": None, "price": ""}})])
        result = run_verify(llm, [make_candidate(1, price="$80.00")], settings, context)

        item = result.items[0]
        assert item.match_score == 50
        assert item.price == "$80.00"
        assert item.id == "Dress_1"
        assert item.fallback_search_link.startswith("https://www.google.com/search?tbm=shop&q=Acme+Dress+Item+1")

    def test_malformed_verdict_rejects_only_its_candidate(self, settings, context):
        llm = FakeLLM([classifier({"Dress Item 1": {"stockStatus": "MAYBE"}})])
        result = run_verify(llm, [make_candidate(1), make_candidate(2)], settings, context)

        assert [item.name for item in result.items] == ["Dress Item 2"]
        assert any("malformed verdict" in log for log in result.logs)

    def test_missing_verdict_rejects_candidate(self, settings, context):
        def only_first(prompt):
            return {"verdicts": classifier()(prompt)["verdicts"][:1]}

        result = run_verify(FakeLLM([only_first]), [make_candidate(1), make_candidate(2)], settings, context)
        assert [item.name for item in result.items] == ["Dress Item 1"]
        assert any("no verdict returned" in log for log in result.logs)


class TestFailureIsolation:
    """A failed batch discards only its own candidates."""

    @pytest.mark.parametrize("failure", [
        RemoteFailure("gave up after 4 attempts", kind="transient", attempts=4),
        ParseError("Response is not valid JSON"),
        {"unexpected": "shape"},
    ])
    def test_batch_failure_isolated(self, settings, context, failure):
        llm = FakeLLM([failure, classifier()])
        result = run_verify(llm, [make_candidate(i) for i in range(1, 8)], settings, context)

        assert llm.calls == 2
        assert [item.name for item in result.items] == ["Dress Item 6", "Dress Item 7"]
        assert any("Batch 1 discarded" in log for log in result.logs)


class TestRanking:
    """Stable sort by match score, truncated to seven."""

    def test_sorted_and_truncated(self, settings, context):
        scores = {f"Dress Item {i}": {"matchScore": s} for i, s in enumerate([40, 90, 60, 90, 10, 70, 80, 55, 65, 30], 1)}
        llm = FakeLLM([classifier(scores)])
        result = run_verify(llm, [make_candidate(i) for i in range(1, 11)], settings, context)

        assert len(result.items) == 7
        assert [item.match_score for item in result.items] == [90, 90, 80, 70, 65, 60, 55]
        assert [item.name for item in result.items[:2]] == ["Dress Item 2", "Dress Item 4"]

    def test_idempotent(self, settings, context):
        scores = {f"Dress Item {i}": {"matchScore": 50 + (i % 3) * 10} for i in range(1, 11)}
        candidates = [make_candidate(i) for i in range(1, 11)]

        first = run_verify(FakeLLM([classifier(scores)]), candidates, settings, context)
        second = run_verify(FakeLLM([classifier(scores)]), candidates, settings, context)
        assert [i.to_dict() for i in first.items] == [i.to_dict() for i in second.items]


class TestParseVerdicts:
    def test_requires_verdict_list(self):
        with pytest.raises(ParseError):
            parse_verdicts({"results": []}, 5)

    def test_first_occurrence_wins_and_out_of_range_ignored(self):
        indexed = parse_verdicts({"verdicts": [
            {"index": 0, "reason": "first"},
            {"index": 0, "reason": "second"},
            {"index": 9, "reason": "out of range"},
        ]}, 5)
        assert list(indexed) == [0]
        assert indexed[0]["reason"] == "first"
