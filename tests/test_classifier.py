"""Tests for request classification."""
import pytest

from app.pageserver.classifier import RequestClassifier
from app.pageserver.constants import RequestType


@pytest.fixture()
def classifier():
    return RequestClassifier.default()


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/_login", RequestType.LOGIN),
        ("/_login/", RequestType.LOGIN),
        ("/_logout", RequestType.LOGOUT),
        ("/_api/pages", RequestType.API),
        ("/_admin/users", RequestType.ADMIN),
        ("/_publish", RequestType.PUBLISH),
        ("/_parts/static/some.part/app.css", RequestType.PARTS),
        ("/_parts/data", RequestType.PARTS),
        ("/", RequestType.PAGE),
        ("/about/team", RequestType.PAGE),
    ],
)
def test_default_rules(classifier, path, expected):
    assert classifier.classify(path) is expected


def test_login_pattern_is_anchored(classifier):
    assert classifier.classify("/_login/extra") is RequestType.PAGE
    assert classifier.classify("/docs/_login") is RequestType.PAGE


def test_unknown_parts_kind_is_a_page(classifier):
    assert classifier.classify("/_parts/other") is RequestType.PAGE


def test_first_matching_rule_wins():
    c = RequestClassifier([(r"^/_admin/", RequestType.ADMIN), (r"^/_admin/publish", RequestType.PUBLISH)])
    assert c.classify("/_admin/publish") is RequestType.ADMIN

    c.add_rule(r"^/shop", RequestType.API)
    assert c.classify("/shop/cart") is RequestType.API


def test_empty_classifier_defaults_to_page():
    assert RequestClassifier().classify("/_login") is RequestType.PAGE
