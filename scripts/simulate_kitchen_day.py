#!/usr/bin/env python3
"""
Kitchen Day Simulation Script

Drives a running API through a lunch rush on the simulated clock:
books a batch of orders, lets the kitchen fall behind (nobody marks
anything READY), and shows how escalation withdraws capacity and how
overdue orders get rebooked.

Usage:
    python scripts/simulate_kitchen_day.py                       # Default rush
    python scripts/simulate_kitchen_day.py --orders 20           # Bigger rush
    python scripts/simulate_kitchen_day.py --date 2026-01-05     # Specific day
    python scripts/simulate_kitchen_day.py --minutes 15          # Longer backlog
    python scripts/simulate_kitchen_day.py --base-url URL        # Custom API URL
    python scripts/simulate_kitchen_day.py --keep                # Keep orders afterwards
"""

import argparse
import random
import sys
from datetime import date, datetime, timedelta

import httpx


# ===================
# CONFIGURATION
# ===================

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_START = "11:50"
TIMEOUT = 30.0

MENU = [
    ("Burger Classic", True),
    ("Cheeseburger", True),
    ("Veggie Burger", True),
    ("Fries", True),
    ("Lemonade", False),
]


# ===================
# OUTPUT HELPERS
# ===================

class Colors:
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def log_success(msg: str):
    print(f"{Colors.GREEN}[OK] {msg}{Colors.RESET}")


def log_error(msg: str):
    print(f"{Colors.RED}[FAIL] {msg}{Colors.RESET}")


def log_info(msg: str):
    print(f"{Colors.BLUE}[INFO] {msg}{Colors.RESET}")


def log_warning(msg: str):
    print(f"{Colors.YELLOW}[WARN] {msg}{Colors.RESET}")


def log_header(msg: str):
    print(f"\n{Colors.BOLD}{Colors.CYAN}{msg}{Colors.RESET}")


# ===================
# API CLIENT
# ===================

class APIError(Exception):
    """API call failed."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class APIClient:
    """Simple HTTP client for API calls."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=TIMEOUT)

    def get(self, path: str, params: dict = None) -> dict:
        response = self.client.get(f"{self.base_url}{path}", params=params)
        return self._handle_response(response, "GET", path)

    def post(self, path: str, data=None, params: dict = None) -> dict:
        response = self.client.post(f"{self.base_url}{path}", json=data, params=params)
        return self._handle_response(response, "POST", path, data)

    def delete(self, path: str) -> dict:
        response = self.client.delete(f"{self.base_url}{path}")
        return self._handle_response(response, "DELETE", path)

    def _handle_response(self, response, method: str, path: str, payload=None):
        if response.status_code >= 400:
            raise APIError(
                f"{response.status_code} error on {method} {path}",
                {
                    "status_code": response.status_code,
                    "payload": payload,
                    "response": response.text[:500] if response.text else None,
                },
            )
        if response.status_code == 204:
            return {}
        return response.json()

    def close(self):
        self.client.close()


# ===================
# SIMULATION
# ===================

class KitchenDaySimulation:
    """Lunch rush on the simulated clock."""

    def __init__(
        self,
        base_url: str,
        day: date,
        start: str,
        orders: int,
        backlog_minutes: int,
        keep: bool = False,
        seed: int = 7,
    ):
        self.api = APIClient(base_url)
        self.day = day
        self.start = start
        self.order_count = orders
        self.backlog_minutes = backlog_minutes
        self.keep = keep
        self.random = random.Random(seed)
        self.location_id = ""

    def _jump(self, instant: datetime) -> None:
        self.api.post("/api/clock/jump", {"to": instant.isoformat()})

    def _print_grid(self) -> None:
        grid = self.api.get(f"/api/slots/{self.location_id}/grid", {"minutes_before": 0, "minutes_after": 30})
        row = "".join({
            "free": ".",
            "booked": "B",
            "blocked": "X",
            "prep": "p",
            "past": " ",
        }[slot["status"]] for slot in grid["slots"])
        stats = grid["stats"]
        print(f"   {grid['now']} |{row}|")
        print(
            f"   free={stats['free']} booked={stats['booked']} "
            f"blocked={stats['blocked']} prep={stats['prep']}"
        )

    def setup(self) -> None:
        log_header("Setup")
        health = self.api.get("/health")
        log_info(f"API status: {health['status']}")

        location = self.api.get("/api/locations/active")
        self.location_id = location["id"]
        log_info(f"Location: {location['name']} ({self.location_id})")

        self.api.post("/api/clock/pause")
        hour, minute = (int(part) for part in self.start.split(":"))
        self._jump(datetime.combine(self.day, datetime.min.time()).replace(hour=hour, minute=minute))
        self.api.delete("/api/orders")
        log_success(f"Clock paused at {self.day} {self.start}, orders cleared")

    def book_rush(self) -> None:
        log_header(f"Booking {self.order_count} orders")
        for index in range(self.order_count):
            lines = self.random.sample(MENU, k=self.random.randint(1, 3))
            payload = {
                "location_id": self.location_id,
                "contact": f"+43 660 {1000000 + index}",
                "items": [
                    {"name": name, "quantity": self.random.randint(1, 3), "prep_eligible": eligible}
                    for name, eligible in lines
                ],
                "price": "9.90",
            }
            try:
                order = self.api.post("/api/orders", payload)
                log_success(f"Order {index + 1}: pickup {order['pickup_time']}")
            except APIError as e:
                log_warning(f"Order {index + 1} rejected: {e.details.get('response')}")
        self._print_grid()

    def fall_behind(self) -> None:
        log_header(f"Kitchen falls behind for {self.backlog_minutes} minutes")
        orders = self.api.get("/api/orders", {"location_id": self.location_id, "status": "PENDING"})
        if not orders["data"]:
            log_warning("No pending orders, nothing to fall behind on")
            return

        first_pickup = min(order["pickup_time"] for order in orders["data"])
        hour, minute = (int(part) for part in first_pickup.split(":"))
        pickup = datetime.combine(self.day, datetime.min.time()).replace(hour=hour, minute=minute)

        for offset in range(1, self.backlog_minutes + 1):
            self._jump(pickup + timedelta(minutes=offset))
            results = self.api.post("/api/reconciliation/escalate")
            for result in results:
                if result["created"]:
                    log_warning(
                        f"{result['max_delay_minutes']} min behind: level "
                        f"{result['previous_level']} -> {result['new_level']}"
                    )
        self._print_grid()

    def rebook(self) -> None:
        log_header("Rebooking overdue orders")
        result = self.api.post("/api/reconciliation/rebook")
        for change in result["changes"]:
            log_info(f"{change['order_id'][:8]}: {change['old_pickup_time']} -> {change['new_pickup_time']}")
        log_success(
            f"{len(result['changes'])} moved in {result['iterations']} passes "
            f"({result['stop_reason']}, {result['remaining_overdue']} still overdue)"
        )
        self._print_grid()

    def teardown(self) -> None:
        if not self.keep:
            self.api.delete("/api/orders")
            log_info("Orders cleared")
        self.api.post("/api/clock/reset")
        self.api.close()

    def run(self) -> bool:
        try:
            self.setup()
            self.book_rush()
            self.fall_behind()
            self.rebook()
            return True
        except (APIError, httpx.HTTPError) as e:
            log_error(str(e))
            if isinstance(e, APIError):
                print(f"   {e.details}")
            return False
        finally:
            try:
                self.teardown()
            except (APIError, httpx.HTTPError) as e:
                log_error(f"Teardown failed: {e}")


# ===================
# MAIN
# ===================

def main():
    parser = argparse.ArgumentParser(
        description="Kitchen day simulation against a running API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"API base URL (default: {DEFAULT_BASE_URL})"
    )
    parser.add_argument(
        "--date",
        default=date.today().isoformat(),
        help="Day to simulate, YYYY-MM-DD (default: today)"
    )
    parser.add_argument(
        "--start",
        default=DEFAULT_START,
        help=f"Simulated start time HH:MM (default: {DEFAULT_START})"
    )
    parser.add_argument(
        "--orders",
        type=int,
        default=12,
        help="Orders to book (default: 12)"
    )
    parser.add_argument(
        "--minutes",
        type=int,
        default=10,
        help="Minutes the kitchen falls behind (default: 10)"
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep orders after the run"
    )

    args = parser.parse_args()

    try:
        day = date.fromisoformat(args.date)
    except ValueError:
        print(f"Error: Invalid --date value: {args.date}")
        sys.exit(1)

    simulation = KitchenDaySimulation(
        base_url=args.base_url,
        day=day,
        start=args.start,
        orders=args.orders,
        backlog_minutes=args.minutes,
        keep=args.keep,
    )

    success = simulation.run()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
