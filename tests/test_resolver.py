# tests/test_resolver.py
from bs4 import BeautifulSoup

from modules.job_harvest.lib import resolver as R

PAGE = """
<div id="root">
  <div class="job-a"><a href="/jobs/1">One</a></div>
  <div class="job-b"><a href="/jobs/2">Two</a></div>
  <div class="job-b"><a href="/jobs/3" data-id="3">Three</a></div>
  <a href="/jobs/2">Two again</a>
  <a href="/about">About us</a>
  <ul class="criteria">
    <li><h3>Employment type</h3><span>Full-time</span></li>
    <li><h3>Seniority level</h3><span>Mid-Senior level</span></li>
  </ul>
</div>
"""


def _doc():
    return BeautifulSoup(PAGE, "html.parser")


def test_first_non_empty_pattern_wins():
    nodes = R.resolve(_doc(), ["div.missing", "section.also-missing", "div.job-b"])
    assert len(nodes) == 2
    assert [n.a.get_text() for n in nodes] == ["Two", "Three"]


def test_results_of_later_patterns_are_not_merged():
    nodes = R.resolve(_doc(), ["div.job-a", "div.job-b"])
    assert len(nodes) == 1


def test_nothing_matches_or_no_root():
    assert R.resolve(_doc(), ["div.nope"]) == []
    assert R.resolve(None, ["div"]) == []
    assert R.resolve_one(_doc(), ["div.nope"]) is None


def test_invalid_selector_is_skipped():
    nodes = R.resolve(_doc(), ["div[", "div.job-a"])
    assert len(nodes) == 1


def test_text_and_attr_helpers():
    doc = _doc()
    assert R.text_of(doc, ["div.nope", "div.job-a a"]) == "One"
    assert R.text_of(doc, ["div.nope"], default="n/a") == "n/a"
    # first node carrying the attribute, within the winning pattern
    assert R.attr_of(doc, ["div.job-b a"], "data-id") == "3"
    assert R.attr_of(doc, ["div.job-b a"], "title", default="-") == "-"


def test_anchors_matching_dedupes_by_href():
    nodes = R.resolve(_doc(), [R.anchors_matching(r"/jobs/\d+")])
    assert [a["href"] for a in nodes] == ["/jobs/1", "/jobs/2", "/jobs/3"]


def test_self_if_matches_the_root_itself():
    card = BeautifulSoup('<a class="card" href="/jobs/9">Nine</a>', "html.parser").a
    assert R.resolve(card, ["a.title", R.self_if("a.card")]) == [card]
    assert R.self_if("div.card")(card) == []


def test_labelled_value_lookup():
    assert R.text_of(_doc(), [R.labelled("ul.criteria li", "h3", "span", "seniority")]) == "Mid-Senior level"


def test_anchors_with_text():
    nodes = R.anchors_with_text("about")(_doc())
    assert [a["href"] for a in nodes] == ["/about"]


def test_resolve_tiers_escalates():
    nodes = R.resolve_tiers(_doc(), [["div.nope"], ["div.job-b", "div.job-a"]])
    assert len(nodes) == 2
