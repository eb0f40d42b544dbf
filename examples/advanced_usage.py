"""examples/advanced_usage.py - before_send scrubbing, request context, decorator.

Shows:
    - a before_send hook that redacts secrets and drops noisy events
    - per-call request and query context
    - @capture_exceptions on a worker function
    - a thread crash captured by the uncaught-exception hook

Run:
    python examples/advanced_usage.py
"""

import json
import threading

from keplog import KeplogClient, MemoryTransport, capture_exceptions


def scrub(event):
    """Redact card numbers and drop health-check noise."""
    if event.get("extra_context", {}).get("path") == "/healthz":
        return None
    request = event.get("context", {}).get("request")
    if request and "card_number" in request.get("body", {}):
        request["body"]["card_number"] = "[redacted]"
    return event


def main() -> None:
    transport = MemoryTransport()
    client = KeplogClient(
        "kep_demo_key",
        transport=transport,
        environment="staging",
        release="2.3.1",
        before_send=scrub,
    )

    client.capture_error(
        ValueError("card declined"),
        {
            "request": {"method": "POST", "url": "/pay", "body": {"card_number": "4111111111111111"}},
            "queries": [{"sql": "SELECT * FROM cards WHERE id = ?", "duration_ms": 4}],
        },
    )
    client.capture_message("ping failed", "warning", {"path": "/healthz"})

    @capture_exceptions(client, breadcrumbs=True)
    def sync_inventory(sku: str, quantity: int) -> None:
        raise RuntimeError(f"warehouse offline while syncing {sku}")

    try:
        sync_inventory("SKU-9", quantity=3)
    except RuntimeError:
        pass

    # The hook also prints the usual thread traceback to stderr.
    worker = threading.Thread(target=lambda: 1 / 0, name="report-worker")
    worker.start()
    worker.join()

    client.close()

    print(f"{len(transport.events)} events sent (the /healthz message was dropped)")
    for event in transport.events:
        summary = {
            "message": event["message"],
            "exception_class": event["context"].get("exception_class"),
            "request": event["context"].get("request"),
            "extra_context": event.get("extra_context"),
        }
        print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
