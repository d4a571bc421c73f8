import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    bed = DomainFixture(ordering)
    bed.setup()
    setup_db(ordering)
    yield bed
    drop_db(ordering)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    from ordering.settings import reset_settings

    with ordering_bed.domain_context():
        yield
        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
    reset_settings()


@pytest.fixture()
def fee_settings():
    """Fee schedule used by the worked examples: 5.00 delivery, free from 50.00, 2% service fee."""
    from ordering.settings import OrderingSettings, set_settings

    settings = OrderingSettings(
        delivery_fee=5.0,
        free_shipping_threshold=50.0,
        service_fee_percent=0.02,
        vendor_processing_fee_percent=0.10,
        order_number_tag="2024",
        retry_backoff=0.0,
    )
    set_settings(settings)
    return settings


@pytest.fixture()
def add_product():
    """Seed a product with opening stock and return it."""
    from ordering.inventory.product import Product

    def _add(product_id, seller_id, stock, price=10.0, name=None, category="General", brand="Acme"):
        product = Product.list_for_sale(
            product_id=product_id,
            seller_id=seller_id,
            name=name or f"Product {product_id}",
            stock=stock,
            price=price,
            category=category,
            brand=brand,
        )
        current_domain.repository_for(Product).add(product)
        return product

    return _add


@pytest.fixture()
def stock_of():
    from ordering.inventory.product import Product

    def _stock(product_id):
        return current_domain.repository_for(Product).get(product_id).stock

    return _stock


@pytest.fixture()
def outside_writer():
    """Re-save a product from another thread without taking the write lock.

    The stored copy moves on by one version, so any transaction that already
    read the product is now holding a stale copy.
    """
    from concurrent.futures import ThreadPoolExecutor
    from datetime import UTC, datetime

    from ordering.domain import ordering
    from ordering.inventory.product import Product

    def _write(product_id):
        with ordering.domain_context():
            repo = current_domain.repository_for(Product)
            product = repo.get(product_id)
            product.updated_at = datetime.now(UTC)
            repo.add(product)

    def _touch(product_id):
        with ThreadPoolExecutor(max_workers=1) as pool:
            pool.submit(_write, product_id).result()

    return _touch
