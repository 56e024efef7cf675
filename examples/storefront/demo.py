"""
Scripted walk-through of the cart and checkout flow.

Every step prints what the shopper would see; the service calls underneath
print their own trace so the suspension points are visible.
"""

from kungfu import Error, Ok

from cartflow import DeliveryInfo, Settings
from cartflow import storage as St
from cartflow.cart import CartStore, MergePolicy
from cartflow.checkout import CheckoutOrchestrator, CheckoutStep
from cartflow.inventory import InventoryValidator
from cartflow.shipping import ShippingCalculator

from examples.storefront.repo import (
    cart_service,
    catalog_service,
    inventory_service,
    order_service,
    seed_all,
    shipping_service,
)


def header(title: str) -> None:
    print(f"\n{'═' * 72}\n  {title}\n{'═' * 72}")


def print_cart(store: CartStore) -> None:
    print(f"\n  Cart ({store.backend_kind.value}):")
    if not store.entries:
        print("    (empty)")
    for entry in store.entries:
        mark = "x" if entry.product_id in store.selection else " "
        status = store.inventory_status(entry).value
        print(
            f"    [{mark}] {entry.product.title:<28} x{entry.quantity:<3}"
            f"{entry.line_total:>12,} VND  ({status})"
        )
    print(
        f"    total {store.total_price:,} VND "
        f"(pre-tax {store.pre_tax_total:,} + VAT {store.vat_amount:,})"
    )


def report(label: str, result) -> None:
    match result:
        case Ok(_):
            print(f"  ✓ {label}")
        case Error(e):
            print(f"  ✗ {label}: {e.kind.name} ({e.message})")


async def run_demo(database_url: str = "sqlite+aiosqlite:///:memory:") -> None:
    seed_all()
    settings = Settings.from_env()

    records, engine = await St.create_record_store(database_url)
    auth = St.AuthState()
    selector = St.BackendSelector(
        auth,
        St.LocalBackend(records, key=settings.local_cart_key, catalog=catalog_service),
        St.RemoteBackend(cart_service, catalog_service),
    )
    store = CartStore(selector, settings)
    validator = InventoryValidator(inventory_service, store)
    shipping = ShippingCalculator(shipping_service, settings)

    try:
        header("1. Anonymous shopping")
        book = catalog_service.product("BOOK-1")
        report("add book x2", await store.add_item(book, 2))
        report("add CD x1", await store.add_item(catalog_service.product("CD-2"), 1))
        report("add vinyl x5", await store.add_item(catalog_service.product("LP-4"), 5))
        print_cart(store)

        header("2. Login and merge into the server cart")
        await cart_service.put_item("BOOK-1", 3)
        auth.login()
        match await store.switch_session(MergePolicy.UNION):
            case Ok(merge):
                print(f"  merged {list(merge.merged)}, local cleared: {merge.local_cleared}")
                for skipped in merge.skipped:
                    print(f"  skipped: {skipped.message}")
            case Error(e):
                print(f"  merge failed: {e.message}")
        print_cart(store)

        header("3. Stock drops before checkout")
        catalog_service.set_stock("BOOK-1", 1)
        store.select_all()
        print(f"  selected {sorted(store.selection)}")

        checkout = CheckoutOrchestrator(store, validator, shipping, order_service, settings=settings)
        match await checkout.begin():
            case Error(e):
                print(f"  checkout stopped: {e.message}")
                print_cart(store)
                checkout = CheckoutOrchestrator(
                    store, validator, shipping, order_service, settings=settings
                )
                report("begin again", await checkout.begin())
            case Ok(step):
                print(f"  checkout at {step.name}")

        header("4. Delivery details")
        delivery = DeliveryInfo(
            recipient_name="Nguyễn Văn An",
            phone="0912 345 678",
            email="an@example.vn",
            city="Hà Nội",
            district="Cầu Giấy",
            address_detail="144 Xuân Thủy",
            is_rush_order=True,
        )
        report("set delivery", await checkout.set_delivery(delivery))
        if checkout.eligibility is not None:
            print(f"  rush supported: {checkout.eligibility.supported}")
            print(f"  rush items: {list(checkout.eligibility.rush_products)}")
        report("to payment", await checkout.next())
        report("to confirmation", await checkout.next())

        header("5. Summary and order")
        match await checkout.summary():
            case Ok(summary):
                print(f"  subtotal  {summary.subtotal:>12,} VND")
                print(f"  shipping  {summary.shipping_fee:>12,} VND (rush {summary.rush_fee:,})")
                print(f"  VAT incl. {summary.vat:>12,} VND")
                print(f"  total     {summary.total:>12,} VND")
                placed = await checkout.place_order(summary)
                report("place order", placed)
                report("place order again", await checkout.place_order(summary))
            case Error(e):
                print(f"  summary failed: {e.message}")

        if checkout.step is CheckoutStep.PLACED and checkout.order is not None:
            print(f"\n  Order {checkout.order.id} is {checkout.order.status.value}")
        print_cart(store)
    finally:
        store.close()
        await engine.dispose()
