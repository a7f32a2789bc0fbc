from gherkin_conductor import Store, World, bind, given, when, then, register_class


@given("an empty cart")
def empty_cart(context):
    context.world.cart = []


@when("I add {string}")
def add_item(context, item):
    context.world.cart.append(item)


@when("I add {int} {string} items")
def add_items(context, count, item):
    context.world.cart.extend([item] * count)


@then("the cart holds {int} item(s)")
def cart_holds(context, count):
    assert len(context.world.cart) == count, f"cart holds {len(context.world.cart)} items"


@given("a discount of {int} percent")
def discount(context, percent):
    context.store.put("discount", percent / 100)


@register_class
class PricingSteps:
    """Prices every item at 1.00 and applies the stored discount"""

    def __init__(self, world: World, store: Store):
        self.world = world
        self.store = store

    @classmethod
    def step_bindings(cls):
        return [bind.then("the total is {float}", "assert_total")]

    def assert_total(self, expected):
        total = float(len(self.world.cart))
        discount = self.store.get("discount", default=0)
        assert round(total * (1 - discount), 2) == expected
