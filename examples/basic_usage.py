"""examples/basic_usage.py - Minimal Keplog setup: capture errors and messages.

Events are collected by a MemoryTransport and printed, so the example runs
without a Keplog server. Pass ``--live`` to send them to ``KEPLOG_BASE_URL``
with ``KEPLOG_INGEST_KEY`` instead.

Run:
    python examples/basic_usage.py
    KEPLOG_INGEST_KEY=kep_xxx python examples/basic_usage.py --live
"""

import json
import sys

from keplog import KeplogClient, MemoryTransport


class InsufficientFunds(Exception):
    pass


def withdraw(balance: int, amount: int) -> int:
    if amount > balance:
        raise InsufficientFunds(f"balance {balance} < requested {amount}")
    return balance - amount


def main() -> None:
    live = "--live" in sys.argv
    transport = None if live else MemoryTransport()

    if live:
        client = KeplogClient.from_env(debug=True)
    else:
        client = KeplogClient("kep_demo_key", transport=transport, release="1.0.0")

    with client:
        client.set_user({"id": "42", "email": "ada@example.com"})
        client.set_tag("feature", "withdrawals")

        try:
            withdraw(100, 5000)
        except InsufficientFunds as exc:
            event_id = client.capture_error(exc, {"account": "ACC-7"})
            print(f"captured error -> {event_id}")

        event_id = client.capture_message("Nightly settlement finished", "info")
        print(f"captured message -> {event_id}")

    if transport is not None:
        for event in transport.events:
            print(json.dumps(event, indent=2, default=str)[:1200])
            print("...")


if __name__ == "__main__":
    main()
