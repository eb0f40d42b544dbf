"""examples/breadcrumbs_usage.py - Leave a trail of breadcrumbs before an error.

Breadcrumbs come from two places here: explicit ``add_breadcrumb`` calls and
ordinary ``logging`` calls routed through KeplogHandler. Both end up in the
event's ``context.breadcrumbs``, oldest first, capped at ``max_breadcrumbs``.

Run:
    python examples/breadcrumbs_usage.py
"""

import logging

from keplog import KeplogClient, KeplogHandler, MemoryTransport


def main() -> None:
    transport = MemoryTransport()
    client = KeplogClient(
        "kep_demo_key",
        transport=transport,
        max_breadcrumbs=5,
        auto_handle_uncaught=False,
    )

    logger = logging.getLogger("shop.checkout")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(KeplogHandler(client))

    client.add_breadcrumb(type="navigation", message="Opened /cart")
    client.add_breadcrumb(
        type="http",
        category="api",
        message="GET /api/cart",
        data={"status": 200, "duration_ms": 38},
    )
    logger.info("Cart loaded with %d items", 3)
    logger.debug("Below the breadcrumb level, not recorded")
    logger.warning("Coupon %s expired", "SPRING24")
    client.add_breadcrumb({"type": "ui", "message": "Clicked 'Pay now'"})
    client.add_breadcrumb(type="http", category="api", message="POST /api/pay", level="error")

    # Five is the cap: the navigation breadcrumb above has been evicted.
    logger.error("Payment provider rejected the card")

    event = transport.events[0]
    print(f"event: {event['message']}")
    for crumb in event["context"]["breadcrumbs"]:
        print(f"  [{crumb.get('type', '-'):>4}] {crumb.get('message')}")

    client.close()


if __name__ == "__main__":
    main()
