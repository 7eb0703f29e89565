"""Client for the Surveyinator API.

Drives the same flow as the survey web page: redeem an access code, ask the
tournament for the next pair, record the vote locally, then submit it once.
"""

import random
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .errors import BadRequest
from .logging import get_logger, anonymize_participant
from .survey.tournament import method_order, next_pair, next_trial_id
from .survey.votes import normalize_preferred, utc_iso_now

logger = get_logger(__name__)


class SurveyClientError(Exception):
    """Exception raised for survey API errors."""

    pass


def random_participant_id() -> str:
    """Generate an ID like "P004211"."""
    return f"P{random.randrange(1_000_000):06d}"


class SurveyClient:
    """Client for the survey API with in-memory vote history."""

    def __init__(
        self,
        base_url: str,
        participant_id: str = None,
        token: str = None,
        origin: str = None,
        timeout: int = 30,
        shuffle_methods: bool = False,
    ):
        """
        Args:
            base_url: API base including the /api path (e.g., https://x.workers.dev/api)
            participant_id: Participant identifier; random if omitted
            token: Previously issued session token
            origin: Origin header to send (must be on the server allow-list)
            timeout: Request timeout in seconds
            shuffle_methods: Present methods in a per-participant seeded order
        """
        self.base_url = base_url.rstrip("/")
        self.participant_id = participant_id or random_participant_id()
        self.token = token
        self.timeout = timeout
        self.shuffle_methods = shuffle_methods
        self.history: List[Dict[str, Any]] = []

        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })
        if origin:
            self.session.headers["Origin"] = origin

    def _post(self, endpoint: str, payload: Dict) -> Dict:
        """POST JSON and return the decoded response."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise SurveyClientError(f"Network error: {e}")

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            message = None
            if isinstance(data, dict):
                message = data.get("error")
            raise SurveyClientError(message or response.text or f"HTTP {response.status_code}")
        return data if isinstance(data, dict) else {}

    def start(self, code: str) -> str:
        """Redeem an access code and keep the issued session token."""
        data = self._post("start", {"code": code})
        token = data.get("token")
        if not token:
            raise SurveyClientError("Server did not return a token")
        self.token = token
        logger.info(f"Survey started for {anonymize_participant(self.participant_id)}")
        return token

    def logout(self) -> None:
        self.token = None

    def next_pair(self, component: str, method_ids: Sequence[str]) -> Optional[Tuple[str, str]]:
        ordered = method_order(self.participant_id, component, method_ids, shuffle=self.shuffle_methods)
        return next_pair(self.participant_id, component, ordered, self.history)

    def next_trial_id(self) -> int:
        return next_trial_id(self.participant_id, self.history)

    def vote(
        self,
        component: str,
        left_method_id: str,
        right_method_id: str,
        preferred: str,
        user_agent: str = "",
        page_url: str = "",
    ) -> Dict[str, Any]:
        """Record a vote locally, then submit it.

        The vote is appended to history before submission, so a failed
        submit still advances the tournament and can be resent with resubmit().

        Returns:
            The vote payload that was recorded

        Raises:
            SurveyClientError: If no token is held or the submission fails
        """
        try:
            preferred = normalize_preferred(preferred)
        except BadRequest as e:
            raise SurveyClientError(e.message)

        vote = {
            "participant_id": self.participant_id,
            "component": component,
            "trial_id": self.next_trial_id(),
            "left_method_id": left_method_id,
            "right_method_id": right_method_id,
            "preferred": preferred,
            "timestamp_utc": utc_iso_now(),
            "user_agent": user_agent,
            "page_url": page_url,
        }
        self.history.append(vote)
        self.submit(vote)
        return vote

    def submit(self, vote: Dict[str, Any]) -> None:
        """Send one recorded vote. Resending the same trial overwrites it server-side."""
        if not self.token:
            raise SurveyClientError("Not started: call start() with an access code first")
        self._post("vote", {"token": self.token, "vote": vote})

    def resubmit(self) -> int:
        """Resend every locally recorded vote. Returns how many were sent."""
        for vote in self.history:
            self.submit(vote)
        return len(self.history)
