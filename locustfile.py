"""
Load Test for the Hackathon Hub API.

Simulates visitors browsing hackathons, participants polling their team and
judges pulling the score table while an event is running.

Usage:
    locust -f locustfile.py -u 500 -r 25 --host http://localhost:8000

Authenticated users need tokens from a seeded database:
    HACKHUB_PARTICIPANT_TOKEN, HACKHUB_JUDGE_TOKEN
"""

import os
import random

from locust import HttpUser, between, events, task
from locust.runners import MasterRunner


# ============== Configuration ==============

CONCURRENT_USERS = 500
SPAWN_RATE = 25
PARTICIPANT_TOKEN = os.getenv("HACKHUB_PARTICIPANT_TOKEN")
JUDGE_TOKEN = os.getenv("HACKHUB_JUDGE_TOKEN")

# Filled from /api/hackathons/open as users start
_cached_hackathon_ids: list[str] = []


def _headers(token: str | None = None) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _accept(response, *ok_statuses: int) -> None:
    """Mark the response, treating rate limiting as expected under load."""
    if response.status_code in ok_statuses or response.status_code == 429:
        response.success()
    else:
        response.failure(f"Unexpected status: {response.status_code}")


def _random_hackathon_id() -> str | None:
    if _cached_hackathon_ids:
        return random.choice(_cached_hackathon_ids)
    return None


# ============== Visitors ==============


class VisitorUser(HttpUser):
    """
    Anonymous browsing of the public hackathon pages.

    Behaviors:
    - List open hackathons
    - Look at the active hackathon
    - Check what a hackathon currently allows
    """

    wait_time = between(1, 5)

    def on_start(self):
        response = self.client.get("/api/hackathons/open", name="GET /api/hackathons/open")
        if response.status_code == 200:
            for hackathon in response.json():
                if hackathon["id"] not in _cached_hackathon_ids:
                    _cached_hackathon_ids.append(hackathon["id"])

    @task(10)
    def list_open_hackathons(self):
        with self.client.get(
            "/api/hackathons/open",
            headers=_headers(),
            name="GET /api/hackathons/open",
            catch_response=True,
        ) as response:
            _accept(response, 200)

    @task(5)
    def get_active_hackathon(self):
        with self.client.get(
            "/api/hackathons/active",
            headers=_headers(),
            name="GET /api/hackathons/active",
            catch_response=True,
        ) as response:
            _accept(response, 200)

    @task(8)
    def get_permissions(self):
        hackathon_id = _random_hackathon_id()
        if hackathon_id is None:
            return
        with self.client.get(
            f"/api/hackathons/{hackathon_id}/permissions",
            headers=_headers(),
            name="GET /api/hackathons/{id}/permissions",
            catch_response=True,
        ) as response:
            _accept(response, 200)

    @task(2)
    def get_categories(self):
        hackathon_id = _random_hackathon_id()
        if hackathon_id is None:
            return
        with self.client.get(
            f"/api/hackathons/{hackathon_id}/categories",
            headers=_headers(),
            name="GET /api/hackathons/{id}/categories",
            catch_response=True,
        ) as response:
            _accept(response, 200)


# ============== Participants ==============


class ParticipantUser(HttpUser):
    """Participants polling their team and invites during the event."""

    wait_time = between(2, 8)

    @task(5)
    def get_current_hackathon(self):
        with self.client.get(
            "/api/hackathons/current",
            headers=_headers(PARTICIPANT_TOKEN),
            name="GET /api/hackathons/current",
            catch_response=True,
        ) as response:
            _accept(response, 200, 401)

    @task(3)
    def get_my_team(self):
        hackathon_id = _random_hackathon_id()
        if hackathon_id is None:
            return
        with self.client.get(
            f"/api/hackathons/{hackathon_id}/my-team",
            headers=_headers(PARTICIPANT_TOKEN),
            name="GET /api/hackathons/{id}/my-team",
            catch_response=True,
        ) as response:
            _accept(response, 200, 401)

    @task(2)
    def get_my_invites(self):
        with self.client.get(
            "/api/invites/me",
            headers=_headers(PARTICIPANT_TOKEN),
            name="GET /api/invites/me",
            catch_response=True,
        ) as response:
            _accept(response, 200, 401)


# ============== Judges ==============


class JudgeUser(HttpUser):
    """Judges refreshing the aggregated score table."""

    wait_time = between(5, 15)

    @task
    def get_team_scores(self):
        hackathon_id = _random_hackathon_id()
        if hackathon_id is None:
            return
        with self.client.get(
            f"/api/hackathons/{hackathon_id}/scores",
            headers=_headers(JUDGE_TOKEN),
            name="GET /api/hackathons/{id}/scores",
            catch_response=True,
        ) as response:
            _accept(response, 200, 401, 403)


# ============== Health ==============


class HealthCheckUser(HttpUser):
    """Periodic availability checks."""

    wait_time = between(10, 30)

    @task
    def health_check(self):
        with self.client.get("/health", name="GET /health", catch_response=True) as response:
            if response.status_code == 200:
                response.success()
            else:
                response.failure(f"Health check failed: {response.status_code}")


# ============== Load Test Events ==============


@events.init.add_listener
def on_locust_init(environment, **kwargs):
    if isinstance(environment.runner, MasterRunner):
        print("Master node initialized for distributed load testing")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print(f"Starting load test with {CONCURRENT_USERS} users at {SPAWN_RATE} users/second")
    if not PARTICIPANT_TOKEN or not JUDGE_TOKEN:
        print("No participant or judge token set; authenticated tasks will see 401")


@events.quitting.add_listener
def on_quitting(environment, **kwargs):
    if environment.stats.total.fail_ratio > 0.05:
        print(f"WARNING: High failure rate ({environment.stats.total.fail_ratio:.2%})")
    if environment.stats.total.avg_response_time > 1000:
        print(f"WARNING: High response time ({environment.stats.total.avg_response_time:.2f}ms)")
