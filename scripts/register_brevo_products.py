# scripts/register_brevo_products.py
"""
Register the storefront meal packages in Brevo for purchase statistics.
Only needs to run once, or whenever packages change.
"""
import asyncio
import argparse
import logging
import os
import sys

# Add parent directory to path so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cantinaxl.core.config import settings
from cantinaxl.core.exceptions import CrmSyncError
from cantinaxl.data.packages import catalog_products
from cantinaxl.services.brevo_stats import BrevoStatsClient

logger = logging.getLogger(__name__)

async def register_packages(client: BrevoStatsClient = None) -> dict:
    products = catalog_products(settings.STOREFRONT_URL)
    print(f"Found {len(products)} packages to register: {', '.join(p['name'] for p in products)}")
    return await (client or BrevoStatsClient()).register_products(products)

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Register meal packages in Brevo")
    parser.add_argument(
        "--async",
        dest="use_celery",
        action="store_true",
        help="Queue the registration on the Celery worker instead of calling Brevo directly",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    if args.use_celery:
        from cantinaxl.tasks.tasks import register_products_task
        register_products_task.delay(catalog_products(settings.STOREFRONT_URL))
        print("Product registration queued")
        return 0

    try:
        result = asyncio.run(register_packages())
    except CrmSyncError as e:
        print(f"Error registering packages in Brevo: {e}")
        return 1
    print(f"Packages registered successfully in Brevo: {result}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
