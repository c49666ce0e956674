# job_harvest/harvesters/reddit.py
"""
Interview questions from Reddit's public search JSON.

One search per configured subreddit, paged through the `after` cursor.
Low-score posts are noise; anything under `min_score` upvotes is dropped.

Example sources entry:
{
  "kind": "reddit",
  "source": "reddit:dotnet-interviews",
  "params": {"subreddits": ["dotnet", "csharp"], "min_score": 10}
}
"""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Any
from urllib.parse import urlencode

from ..errors import ListingError
from ..fetcher import SoftFailure
from ..models import CanonicalListing, HarvestResult, ListingKind
from ..normalize import RawListing
from ..utils import parse_datetime
from .base import BaseHarvester, ListingCollector
from .registry import register

log = logging.getLogger(__name__)

BASE_URL = "https://www.reddit.com"
SEARCH_URL = BASE_URL + "/r/{subreddit}/search.json"
DEFAULT_SUBREDDITS = ("dotnet", "csharp", "cscareerquestions", "ExperiencedDevs")
MIN_SCORE = 5
PAGE_LIMIT = 25
# reddit rejects generic/browser agents on the JSON endpoints
USER_AGENT = "job-harvest/1.0 (interview question collector)"


def _score(post: dict[str, Any]) -> int:
    try:
        return int(post.get("score") or 0)
    except (TypeError, ValueError):
        return 0


@register
class RedditQuestionHarvester(BaseHarvester):
    kind = "reddit"
    platform = "reddit"
    platform_name = "Reddit"
    request_delay = 3.0

    def search_url(self, subreddit: str, query: str, after: str | None = None) -> str:
        query_params = {"q": query, "restrict_sr": "on", "sort": "relevance", "limit": PAGE_LIMIT}
        if after:
            query_params["after"] = after
        return f"{SEARCH_URL.format(subreddit=subreddit)}?{urlencode(query_params)}"

    def crawl(
        self,
        keywords: str,
        max_pages: int,
        cancel: threading.Event | None,
        collector: ListingCollector,
        result: HarvestResult,
    ) -> None:
        subreddits = self.params.get("subreddits") or DEFAULT_SUBREDDITS
        min_score = int(self.params.get("min_score", MIN_SCORE))
        query = f"{keywords} interview questions".strip()

        for subreddit in subreddits:
            after: str | None = None
            for _ in range(max_pages):
                self._check_cancel(cancel)
                url = self.search_url(subreddit, query, after)
                payload = self.fetcher.fetch_json(url, cancel, delay=self.request_delay, headers={"User-Agent": USER_AGENT})
                result.pages_fetched += 1
                if isinstance(payload, SoftFailure):
                    # one missing/private subreddit shouldn't sink the others
                    self._soft_stop(result, payload)
                    if payload.terminal:
                        return
                    break

                data = payload.get("data") if isinstance(payload, dict) else None
                if not isinstance(data, dict):
                    result.errors.append(f"unexpected payload from {url}")
                    result.stop_reason = "parse_error"
                    break

                for child in data.get("children") or []:
                    post = child.get("data") if isinstance(child, dict) else None
                    if not isinstance(post, dict) or _score(post) < min_score:
                        continue
                    self._emit(collector, partial(self.post_listing, post), url)

                after = data.get("after")
                if not after:
                    result.stop_reason = "last_page"
                    break
            else:
                result.stop_reason = "max_pages"
            log.debug("%s: r/%s done (%d kept so far)", self.source, subreddit, len(collector))

    def post_listing(self, post: dict[str, Any]) -> CanonicalListing:
        permalink = str(post.get("permalink") or "")
        if not post.get("id") or not permalink:
            raise ListingError("post has no id/permalink")
        raw = RawListing(
            native_id=str(post["id"]),
            title=str(post.get("title") or ""),
            url=BASE_URL + permalink,
            company=f"r/{post['subreddit']}" if post.get("subreddit") else "",
            description=str(post.get("selftext") or ""),
            posted=parse_datetime(post.get("created_utc")),
            kind=ListingKind.INTERVIEW_QUESTION,
        )
        return self._listing(raw)
