"""
Task difficulty estimation via OpenAI.
Always yields a value in [1, 10]; any failure becomes the default of 5.
"""
import logging
import os
import re
from typing import Optional

from openai import OpenAI

from focusbot.constants import (
    ESTIMATE_MIN_POINTS,
    ESTIMATE_MAX_POINTS,
    ESTIMATE_DEFAULT_POINTS,
    ESTIMATE_TIMEOUT_SECONDS,
    DEFAULT_OPENAI_MODEL,
)
from focusbot.exceptions import EstimatorFailure

logger = logging.getLogger("focusbot.estimator")

_NUMBER_RE = re.compile(r"\d+")

PROMPT_TEMPLATE = """You are a task difficulty estimator for solo founders and entrepreneurs.
Analyze the following task and assign a difficulty score from 1-10 based on:
- Time investment required (1=<1hr, 5=1-2 days, 10=1+ weeks)
- Complexity and skill required
- Impact on business outcomes

Task Title: {title}
Task Description: {description}

Respond with ONLY a single number between 1 and 10, nothing else."""


class TaskEstimator:
    """Assigns a point value to a goal title"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client=None,
        timeout: float = ESTIMATE_TIMEOUT_SECONDS
    ):
        self.model = model or os.getenv("FOCUSBOT_OPENAI_MODEL", DEFAULT_OPENAI_MODEL)
        self.client = client
        if self.client is None:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if api_key:
                self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
                logger.info("Task estimator initialized")
            else:
                logger.warning("OPENAI_API_KEY not set, goals will get default points")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def estimate(self, title: str, description: str = "") -> int:
        """
        Estimate points for a goal.

        Returns:
            Integer in [1, 10]; ESTIMATE_DEFAULT_POINTS on any failure
        """
        if not self.enabled:
            return ESTIMATE_DEFAULT_POINTS

        try:
            points = self._request_points(title, description)
        except EstimatorFailure as e:
            logger.warning(f"{e}; using default points")
            return ESTIMATE_DEFAULT_POINTS
        except Exception as e:
            logger.error(f"Estimator request failed: {e}; using default points")
            return ESTIMATE_DEFAULT_POINTS

        logger.info(f"Estimated {points} points for goal: {title}")
        return points

    def _request_points(self, title: str, description: str) -> int:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{
                "role": "user",
                "content": PROMPT_TEMPLATE.format(title=title, description=description),
            }],
            temperature=0.3,
            max_tokens=10,
        )
        if not response.choices:
            raise EstimatorFailure("empty response")

        content = (response.choices[0].message.content or "").strip()
        return self.parse_points(content)

    @staticmethod
    def parse_points(content: str) -> int:
        """Pull the first integer out of the reply and clamp it to [1, 10]"""
        match = _NUMBER_RE.search(content)
        if not match:
            raise EstimatorFailure(f"no number in reply {content!r}")
        points = int(match.group())
        return max(ESTIMATE_MIN_POINTS, min(ESTIMATE_MAX_POINTS, points))
