"""Home and asset service."""

import logging

from src.core import db_client
from src.core.config import constants
from src.core.logging import span
from src.domain.create_models import AssetCreate, HomeCreate
from src.domain.home import Asset, AssetCategory, Home


logger = logging.getLogger(__name__)


async def create_home(*, user_id: str, name: str, address: str | None = None) -> Home:
    """Create a home owned by a user."""
    with span("home_service.create_home"):
        home_data = HomeCreate(user_id=user_id, name=name, address=address)
        record = await db_client.create_record(collection="homes", data=home_data.model_dump())
        logger.info("Created home", extra={"home_id": record["id"], "user_id": user_id})
        return Home(**record)


async def get_home(*, home_id: str) -> Home:
    """Get a home by ID.

    Raises:
        RecordNotFoundError: If the home does not exist
    """
    with span("home_service.get_home"):
        return Home(**await db_client.get_record(collection="homes", record_id=home_id))


async def create_asset(
    *,
    home_id: str,
    name: str,
    category: AssetCategory = AssetCategory.OTHER,
    manufacturer: str | None = None,
    model_number: str | None = None,
) -> Asset:
    """Create an asset in a home.

    Raises:
        RecordNotFoundError: If the home does not exist
    """
    with span("home_service.create_asset"):
        await db_client.get_record(collection="homes", record_id=home_id)

        asset_data = AssetCreate(
            home_id=home_id,
            name=name,
            category=category,
            manufacturer=manufacturer,
            model_number=model_number,
        )
        record = await db_client.create_record(collection="assets", data=asset_data.model_dump(mode="json"))
        logger.info("Created asset", extra={"asset_id": record["id"], "home_id": home_id})
        return Asset(**record)


async def get_asset(*, asset_id: str) -> Asset:
    """Get an asset by ID.

    Raises:
        RecordNotFoundError: If the asset does not exist
    """
    with span("home_service.get_asset"):
        return Asset(**await db_client.get_record(collection="assets", record_id=asset_id))


async def list_assets(*, home_id: str, category: AssetCategory | None = None) -> list[Asset]:
    """List a home's assets, optionally filtered by category."""
    with span("home_service.list_assets"):
        filter_query = f'home_id = "{db_client.sanitize_param(home_id)}"'
        if category:
            filter_query += f' && category = "{category}"'

        records = await db_client.list_records(
            collection="assets",
            filter_query=filter_query,
            sort="+name",
            per_page=constants.MAX_PER_PAGE_LIMIT,
        )
        return [Asset(**r) for r in records]
