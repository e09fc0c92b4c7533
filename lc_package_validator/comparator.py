"""
Semantic goods-description comparator.

Whether "CRUDE OIL" on an invoice corresponds to "MURBAN CRUDE OIL" on the LC
is a language question, not a string question, so one small model call per
document pair answers it. Everything around that call is code:

  - Strictness is chosen by document type, never by the model.
  - Calls fan out over a small thread pool and are awaited together.
  - Any failure (no key, transport error, bad JSON, timeout) becomes
    matches=False with a manual-review reason. A silent pass on a real
    mismatch costs more than an extra review.
"""

from __future__ import annotations

import json
import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor, wait
from enum import Enum
from typing import Optional, Protocol

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from .config import Settings
from .exceptions import ComparatorError
from .models import CamelModel

logger = logging.getLogger(__name__)

MANUAL_REVIEW_REASON = "Unable to verify goods description - manual review recommended"


class Strictness(str, Enum):
    """How closely another document must follow the LC goods description."""

    STRICT = "strict"  # Commercial invoice: must correspond with the LC
    LENIENT = "lenient"  # Transport docs, packing list: general terms allowed

    @property
    def rule(self) -> str:
        return _RULES[self]


_RULES = {
    Strictness.STRICT: (
        "UCP 600 Article 18(c): the invoice must 'correspond' with the LC - all key "
        "product descriptors (grade, type, specification) must match. Missing "
        "descriptors = mismatch."
    ),
    Strictness.LENIENT: (
        "UCP 600 Article 19: the document may use general terms and only fails if it "
        "describes a completely different product category."
    ),
}


class GoodsComparison(CamelModel):
    matches: bool
    reason: Optional[str] = None


FAIL_CLOSED = GoodsComparison(matches=False, reason=MANUAL_REVIEW_REASON)


class GoodsComparator(Protocol):
    def compare(
        self, lc_description: str, other_description: str, strictness: Strictness
    ) -> GoodsComparison:
        ...


# ─── OpenAI Comparator ───────────────────────────────────────────────

_PROMPT = """\
Compare these goods descriptions for a Letter of Credit presentation.

LC description: "{lc}"
Other document description: "{other}"

Rule: {rule}

Examples:
- LC "MURBAN CRUDE OIL" vs Invoice "CRUDE OIL" -> mismatch (invoice missing grade "MURBAN")
- LC "MURBAN CRUDE OIL" vs B/L "CRUDE OIL" -> match (B/L can use general terms)
- LC "MURBAN CRUDE OIL" vs B/L "FROZEN BEEF" -> mismatch (different product entirely)
- LC "FROZEN BEEF CUTS" vs Invoice "BEEF CUTS FROZEN" -> match (same words, different order)

Respond with JSON only:
{{"matches": true or false, "reason": "one sentence explanation"}}"""

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")


class OpenAIGoodsComparator:
    """Goods comparator backed by a small OpenAI chat model."""

    def __init__(self, settings: Settings, client: OpenAI | None = None):
        self.model = settings.comparator_model
        if client is not None:
            self._client: OpenAI | None = client
        elif settings.online:
            self._client = OpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.comparator_timeout,
            )
        else:
            self._client = None

    def compare(
        self, lc_description: str, other_description: str, strictness: Strictness
    ) -> GoodsComparison:
        """Ask the model whether the two descriptions correspond.

        Raises:
            ComparatorError: offline, transport failure, or unusable answer.
        """
        if self._client is None:
            raise ComparatorError("No OPENAI_API_KEY set - goods comparator unavailable")

        prompt = _PROMPT.format(
            lc=lc_description, other=other_description, rule=strictness.rule
        )
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except OpenAIError as e:
            raise ComparatorError(f"Goods comparator call failed: {e}") from e

        content = response.choices[0].message.content or ""
        return parse_comparison(content)


def parse_comparison(content: str) -> GoodsComparison:
    """Parse the comparator's JSON answer (code fences tolerated).

    Raises:
        ComparatorError: not JSON, or no boolean `matches`.
    """
    cleaned = _CODE_FENCE_RE.sub("", content).strip()
    try:
        return GoodsComparison.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ComparatorError(
            f"Unusable goods comparator answer: {content[:200]!r}"
        ) from e


# ─── Fan-out ─────────────────────────────────────────────────────────


def compare_all(
    comparator: GoodsComparator,
    lc_description: str,
    others: list[tuple[str, Strictness]],
    max_workers: int = 3,
    timeout: float = 15.0,
) -> list[GoodsComparison]:
    """Compare every description in `others` against the LC, concurrently.

    Results come back in the order of `others`. A call that raises or is
    still running when the deadline passes yields FAIL_CLOSED.

    The deadline is `timeout` per wave of `max_workers` calls, so queued
    calls get the same budget as the first ones.
    """
    if not others:
        return []

    workers = min(max_workers, len(others))
    deadline = timeout * math.ceil(len(others) / workers)
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="goods-compare")
    try:
        futures = [
            executor.submit(comparator.compare, lc_description, description, strictness)
            for description, strictness in others
        ]
        done, _ = wait(futures, timeout=deadline)

        results: list[GoodsComparison] = []
        for future in futures:
            if future not in done:
                logger.warning("Goods comparison timed out after %.1fs - failing closed", deadline)
                results.append(FAIL_CLOSED)
                continue
            try:
                results.append(future.result())
            except Exception as e:  # any comparator failure fails closed
                logger.warning("Goods comparison failed (%s) - failing closed", e)
                results.append(FAIL_CLOSED)
        return results
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
