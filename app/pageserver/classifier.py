from __future__ import annotations

import re
from collections.abc import Iterable

from app.pageserver.constants import CLASSIFIER_RULES, RequestType


class RequestClassifier:
    """
    Maps a normalized URL path to a request type.

    Rules are tried in registration order and the first matching pattern wins.
    Anything unmatched is a content page.
    """

    def __init__(self, rules: Iterable[tuple[str | re.Pattern[str], RequestType]] = ()) -> None:
        self._rules: list[tuple[re.Pattern[str], RequestType]] = []
        for pattern, request_type in rules:
            self.add_rule(pattern, request_type)

    @classmethod
    def default(cls) -> RequestClassifier:
        return cls(CLASSIFIER_RULES)

    def add_rule(self, pattern: str | re.Pattern[str], request_type: RequestType) -> None:
        self._rules.append((re.compile(pattern), request_type))

    def classify(self, url_path: str) -> RequestType:
        for pattern, request_type in self._rules:
            if pattern.search(url_path):
                return request_type
        return RequestType.PAGE
