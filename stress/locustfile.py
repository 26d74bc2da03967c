"""Locust profile mixing shorten, redirect and link lookups.

Each simulated user keeps a pool of codes it created so redirect and lookup
traffic targets links that exist, plus a trickle of unknown codes to exercise
the uncached not-found path.

Run against a local instance::

    locust -f stress/locustfile.py --host http://localhost:8080
"""

import random

from locust import HttpUser, between, task

MAX_CODES_PER_USER = 200
UNKNOWN_CODE = "ZZZZZZZ"


class ShortLinkUser(HttpUser):
    """Mixed read-heavy workload."""

    wait_time = between(0.1, 0.5)

    def on_start(self) -> None:
        self.codes: list[str] = []

    @task(2)
    def shorten(self) -> None:
        url = f"https://example.com/page/{random.randint(1, 1000000)}?ref=load"
        response = self.client.post("/api/shorten", json={"url": url}, name="POST /api/shorten")

        if response.status_code == 201:
            code = response.json().get("code")
            if code:
                self.codes.append(code)
                if len(self.codes) > MAX_CODES_PER_USER:
                    self.codes = self.codes[-MAX_CODES_PER_USER:]

    @task(8)
    def redirect(self) -> None:
        if not self.codes:
            self.shorten()
            return

        code = random.choice(self.codes)
        self.client.get(f"/{code}", name="GET /:code", allow_redirects=False)

    @task(1)
    def lookup(self) -> None:
        if not self.codes:
            self.shorten()
            return

        code = random.choice(self.codes)
        self.client.get(f"/api/links/{code}", name="GET /api/links/:code")

    @task(1)
    def redirect_unknown(self) -> None:
        with self.client.get(
            f"/{UNKNOWN_CODE}", name="GET /:code (unknown)", allow_redirects=False, catch_response=True
        ) as response:
            if response.status_code == 404:
                response.success()
