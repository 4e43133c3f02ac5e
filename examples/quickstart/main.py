"""GateBus Quickstart: gate a login event on a maintenance flag.

All components run in-memory; no configuration required.

Run:
    python examples/quickstart/main.py
"""

import asyncio
import logging


async def main():
    from gatebus import GatedBus, LoggingCallback, EventInQueue

    maintenance = True

    async def not_in_maintenance(user: str) -> bool:
        return not maintenance

    bus = GatedBus(
        {
            "user.login": [
                lambda user: user != "blocked",
                not_in_maintenance,
            ],
        },
        payload_types={"user.login": str},
        callbacks=[LoggingCallback()],
    )
    bus.on("user.login", lambda user: print(f"  welcome, {user}"))
    bus.on("user.logout", lambda user: print(f"  goodbye, {user}"))

    print("\n── Maintenance on ──")
    await bus.emit("user.login", "alice")
    await bus.emit("user.login", "blocked")
    await bus.emit("user.logout", "carol")      # no middleware: always delivered
    print(f"  pending: {bus.pending('user.login')}")

    try:
        bus.off_all("user.login")
    except EventInQueue as exc:
        print(f"  refused: {exc}")

    print("\n── Maintenance off, re-evaluating ──")
    maintenance = False
    await bus.re_eval("user.login")
    print(f"  pending: {bus.pending('user.login')}")

    print("\n── Discarding what is left ──")
    print(f"  dropped {bus.clear_queue('user.login')} payload(s)")
    bus.off_all("user.login")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")
    asyncio.run(main())
