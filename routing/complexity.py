"""
Heuristic complexity scoring for chat requests.

The score is purely additive and has no upper bound. Patterns use ASCII word
boundaries and ASCII case folding.
"""

import re
from typing import List, Sequence

from routing.window import ChatMessage, latest_content

LONG_MESSAGE_CHARS = 400
VERY_LONG_MESSAGE_CHARS = 900
LONG_HISTORY_MESSAGES = 8
SIGNAL_POINTS = 2

TECHNICAL_SIGNALS: List[re.Pattern] = [
    re.compile(r"\b(architecture|optimi[sz]e|benchmark|latency|throughput|complexity|algorithm|debug|refactor)\b", re.I | re.A),
    re.compile(r"```[\s\S]*```"),
    re.compile(r"\b(rust|python|typescript|docker|kubernetes|sql|regex|api|stream)\b", re.I | re.A),
]

COMPARISON_INTENT = re.compile(r"\b(compare|trade[- ]?off|analy[sz]e|evaluate)\b", re.I | re.A)


def score_query_complexity(messages: Sequence[ChatMessage]) -> int:
    latest = latest_content(messages)
    score = 0

    if len(latest) > LONG_MESSAGE_CHARS:
        score += SIGNAL_POINTS
    if len(latest) > VERY_LONG_MESSAGE_CHARS:
        score += SIGNAL_POINTS
    if len(messages) > LONG_HISTORY_MESSAGES:
        score += SIGNAL_POINTS

    for pattern in TECHNICAL_SIGNALS:
        if pattern.search(latest):
            score += SIGNAL_POINTS

    if COMPARISON_INTENT.search(latest):
        score += SIGNAL_POINTS

    return score
