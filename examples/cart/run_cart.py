"""
Run the cart feature in-process:

    python examples/cart/run_cart.py
"""

import logging
from pathlib import Path

from gherkin_conductor import EventBus, InlineRunner, LoggingSubscriber, TopLevelRun, global_registry

HERE = Path(__file__).parent


def main():
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    global_registry.load_module(str(HERE / "steps" / "cart_steps.py"))
    global_registry.seal()

    event_bus = EventBus()
    event_bus.subscribe_all(LoggingSubscriber())

    runner = InlineRunner()
    TopLevelRun(HERE / "features" / "cart.feature", event_bus=event_bus,
                tag_filter="not @wip").execute(runner)

    for result in runner.run():
        print(f"{result.status.value:<8} {result.full_title}")


if __name__ == "__main__":
    main()
