from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload
from starlette.concurrency import run_in_threadpool

from storefront.gateway.errors import (
    ConstraintViolationError,
    GatewayError,
    GatewayUnavailableError,
    PermissionDeniedError,
    RecordNotFoundError,
    StaleWriteError,
)
from storefront.gateway.feed import ChangeFeed
from storefront.models.inventory import InventoryItem, RecipeItem
from storefront.models.menu_item import MenuItem
from storefront.models.order import Order
from storefront.models.restaurant import Restaurant
from storefront.models.review import Review
from storefront.schemas.changes import (
    InventoryDeleted,
    InventoryInserted,
    InventoryUpdated,
    MenuItemDeleted,
    MenuItemInserted,
    MenuItemUpdated,
    OrderInserted,
    OrderUpdated,
)
from storefront.schemas.records import (
    InventoryRecord,
    MenuItemRecord,
    OrderDraft,
    OrderRecord,
    RecipeLink,
    RestaurantRecord,
    ReviewRecord,
)
from storefront.services.order_state import INITIAL_STATUS, OrderStatus

logger = logging.getLogger(__name__)

LOG_PREFIX = "[GATEWAY]"

T = TypeVar("T")

RESTAURANT_FIELDS = {
    "name",
    "city",
    "theme_color",
    "secondary_color",
    "font",
    "hero_image_url",
    "hero_title",
    "hero_subtitle",
    "about_us",
    "address",
    "phone_number",
    "whatsapp_number",
    "opening_hours",
    "google_maps_url",
    "upi_id",
    "is_accepting_orders",
    "total_tables",
}
MENU_ITEM_FIELDS = {"name", "price", "category", "is_veg", "image_url", "is_available"}
INVENTORY_FIELDS = {"name", "unit", "current_stock", "cost_per_unit", "min_stock_alert"}


def _pick(values: dict[str, Any], allowed: set[str]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if key in allowed}


def _inventory_record(row: InventoryItem) -> InventoryRecord:
    return InventoryRecord.model_validate(row)


def _menu_record(row: MenuItem) -> MenuItemRecord:
    recipe = [
        RecipeLink(
            id=link.id,
            inventory_item_id=link.inventory_item_id,
            quantity=link.quantity,
            component=_inventory_record(link.inventory_item) if link.inventory_item is not None else None,
        )
        for link in row.recipe_items
    ]
    return MenuItemRecord(
        id=row.id,
        restaurant_id=row.restaurant_id,
        name=row.name,
        price=row.price,
        category=row.category,
        is_veg=row.is_veg,
        image_url=row.image_url,
        is_available=row.is_available,
        recipe=recipe,
    )


def _menu_query(db: Session):
    return db.query(MenuItem).options(
        selectinload(MenuItem.recipe_items).joinedload(RecipeItem.inventory_item)
    )


def _owned_row(db: Session, model, table: str, restaurant_id: str, record_id: str, query=None):
    row = (query if query is not None else db.query(model)).filter(model.id == record_id).first()
    if row is None:
        raise RecordNotFoundError(f"{table} row {record_id} not found", table=table, record_id=record_id)
    if row.restaurant_id != restaurant_id:
        raise PermissionDeniedError(f"{table} row {record_id} belongs to another restaurant", table=table)
    return row


class SqlGateway:
    """Gateway backed by SQLAlchemy sessions.

    Session work runs in the threadpool; change events are published on the
    calling loop once the write has committed.
    """

    def __init__(self, session_factory: Callable[[], Session], feed: ChangeFeed | None = None) -> None:
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()

    def _in_session(self, fn: Callable[..., T], *args: Any) -> T:
        db = self._session_factory()
        try:
            return fn(db, *args)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def _run(self, table: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await run_in_threadpool(self._in_session, fn, *args)
        except GatewayError:
            raise
        except IntegrityError as exc:
            logger.warning("%s integrity error table=%s error=%s", LOG_PREFIX, table, exc.orig)
            raise ConstraintViolationError(f"{table} write rejected by a constraint", table=table) from exc
        except SQLAlchemyError as exc:
            logger.exception("%s storage failure table=%s", LOG_PREFIX, table)
            raise GatewayUnavailableError(f"{table} storage unavailable", table=table) from exc

    # Restaurants

    async def get_restaurant_by_slug(self, slug: str) -> RestaurantRecord:
        def _load(db: Session) -> RestaurantRecord:
            restaurant = db.query(Restaurant).filter(Restaurant.slug == slug).first()
            if restaurant is None:
                raise RecordNotFoundError(f"restaurant {slug!r} not found", table="restaurants", record_id=slug)
            return RestaurantRecord.model_validate(restaurant)

        return await self._run("restaurants", _load)

    async def get_restaurant(self, restaurant_id: str) -> RestaurantRecord:
        def _load(db: Session) -> RestaurantRecord:
            restaurant = db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
            if restaurant is None:
                raise RecordNotFoundError(
                    f"restaurant {restaurant_id} not found", table="restaurants", record_id=restaurant_id
                )
            return RestaurantRecord.model_validate(restaurant)

        return await self._run("restaurants", _load)

    async def get_restaurant_for_owner(self, owner_id: str) -> RestaurantRecord | None:
        def _load(db: Session) -> RestaurantRecord | None:
            restaurant = db.query(Restaurant).filter(Restaurant.owner_id == owner_id).first()
            return RestaurantRecord.model_validate(restaurant) if restaurant is not None else None

        return await self._run("restaurants", _load)

    async def save_restaurant(self, owner_id: str, values: dict[str, Any]) -> RestaurantRecord:
        """Creates the owner's restaurant on first save, updates it afterwards.

        ``slug`` is only read on creation.
        """

        def _save(db: Session) -> RestaurantRecord:
            restaurant = db.query(Restaurant).filter(Restaurant.owner_id == owner_id).first()
            changes = _pick(values, RESTAURANT_FIELDS)
            if restaurant is None:
                restaurant = Restaurant(owner_id=owner_id, slug=values["slug"], **changes)
                db.add(restaurant)
                logger.info("%s restaurant created owner_id=%s slug=%s", LOG_PREFIX, owner_id, restaurant.slug)
            else:
                for key, value in changes.items():
                    setattr(restaurant, key, value)
            db.commit()
            db.refresh(restaurant)
            return RestaurantRecord.model_validate(restaurant)

        return await self._run("restaurants", _save)

    # Menu

    async def list_menu(self, restaurant_id: str, *, available_only: bool = False) -> list[MenuItemRecord]:
        def _load(db: Session) -> list[MenuItemRecord]:
            query = _menu_query(db).filter(MenuItem.restaurant_id == restaurant_id)
            if available_only:
                query = query.filter(MenuItem.is_available.is_(True))
            rows = query.order_by(MenuItem.category, MenuItem.name).all()
            return [_menu_record(row) for row in rows]

        return await self._run("menu_items", _load)

    async def create_menu_item(
        self,
        restaurant_id: str,
        values: dict[str, Any],
        recipe: list[tuple[str, float]] | None = None,
    ) -> MenuItemRecord:
        def _create(db: Session) -> MenuItemRecord:
            item = MenuItem(restaurant_id=restaurant_id, **_pick(values, MENU_ITEM_FIELDS))
            db.add(item)
            db.flush()
            for inventory_item_id, quantity in recipe or []:
                _owned_row(db, InventoryItem, "inventory", restaurant_id, inventory_item_id)
                db.add(
                    RecipeItem(
                        restaurant_id=restaurant_id,
                        menu_item_id=item.id,
                        inventory_item_id=inventory_item_id,
                        quantity=quantity,
                    )
                )
            db.commit()
            return _menu_record(_menu_query(db).filter(MenuItem.id == item.id).one())

        record = await self._run("menu_items", _create)
        self.feed.publish(MenuItemInserted(new=record))
        return record

    async def update_menu_item(self, restaurant_id: str, item_id: str, values: dict[str, Any]) -> MenuItemRecord:
        def _update(db: Session) -> tuple[MenuItemRecord, MenuItemRecord]:
            item = _owned_row(db, MenuItem, "menu_items", restaurant_id, item_id, query=_menu_query(db))
            old = _menu_record(item)
            for key, value in _pick(values, MENU_ITEM_FIELDS).items():
                setattr(item, key, value)
            db.commit()
            return old, _menu_record(_menu_query(db).filter(MenuItem.id == item_id).one())

        old, new = await self._run("menu_items", _update)
        self.feed.publish(MenuItemUpdated(new=new, old=old))
        return new

    async def delete_menu_item(self, restaurant_id: str, item_id: str) -> MenuItemRecord:
        def _delete(db: Session) -> MenuItemRecord:
            item = _owned_row(db, MenuItem, "menu_items", restaurant_id, item_id, query=_menu_query(db))
            old = _menu_record(item)
            db.delete(item)
            db.commit()
            return old

        old = await self._run("menu_items", _delete)
        self.feed.publish(MenuItemDeleted(old=old))
        return old

    async def add_recipe_link(
        self, restaurant_id: str, item_id: str, inventory_item_id: str, quantity: float
    ) -> MenuItemRecord:
        def _add(db: Session) -> tuple[MenuItemRecord, MenuItemRecord]:
            item = _owned_row(db, MenuItem, "menu_items", restaurant_id, item_id, query=_menu_query(db))
            _owned_row(db, InventoryItem, "inventory", restaurant_id, inventory_item_id)
            old = _menu_record(item)
            db.add(
                RecipeItem(
                    restaurant_id=restaurant_id,
                    menu_item_id=item_id,
                    inventory_item_id=inventory_item_id,
                    quantity=quantity,
                )
            )
            db.commit()
            return old, _menu_record(_menu_query(db).filter(MenuItem.id == item_id).one())

        old, new = await self._run("menu_items", _add)
        self.feed.publish(MenuItemUpdated(new=new, old=old))
        return new

    async def remove_recipe_link(self, restaurant_id: str, item_id: str, link_id: str) -> MenuItemRecord:
        def _remove(db: Session) -> tuple[MenuItemRecord, MenuItemRecord]:
            item = _owned_row(db, MenuItem, "menu_items", restaurant_id, item_id, query=_menu_query(db))
            link = next((link for link in item.recipe_items if link.id == link_id), None)
            if link is None:
                raise RecordNotFoundError(
                    f"recipe link {link_id} not found on menu item {item_id}",
                    table="recipe_items",
                    record_id=link_id,
                )
            old = _menu_record(item)
            item.recipe_items.remove(link)
            db.commit()
            return old, _menu_record(_menu_query(db).filter(MenuItem.id == item_id).one())

        old, new = await self._run("menu_items", _remove)
        self.feed.publish(MenuItemUpdated(new=new, old=old))
        return new

    # Inventory

    async def list_inventory(self, restaurant_id: str) -> list[InventoryRecord]:
        def _load(db: Session) -> list[InventoryRecord]:
            rows = (
                db.query(InventoryItem)
                .filter(InventoryItem.restaurant_id == restaurant_id)
                .order_by(InventoryItem.name)
                .all()
            )
            return [_inventory_record(row) for row in rows]

        return await self._run("inventory", _load)

    async def create_inventory_item(self, restaurant_id: str, values: dict[str, Any]) -> InventoryRecord:
        def _create(db: Session) -> InventoryRecord:
            row = InventoryItem(restaurant_id=restaurant_id, **_pick(values, INVENTORY_FIELDS))
            db.add(row)
            db.commit()
            db.refresh(row)
            return _inventory_record(row)

        record = await self._run("inventory", _create)
        self.feed.publish(InventoryInserted(new=record))
        return record

    async def adjust_stock(self, restaurant_id: str, item_id: str, delta: float) -> InventoryRecord:
        def _adjust(db: Session) -> tuple[InventoryRecord, InventoryRecord]:
            row = _owned_row(db, InventoryItem, "inventory", restaurant_id, item_id)
            old = _inventory_record(row)
            updated_stock = float(row.current_stock or 0) + float(delta)
            if updated_stock < 0:
                raise ConstraintViolationError(f"stock for {row.name!r} cannot go below zero", table="inventory")
            row.current_stock = updated_stock
            db.commit()
            db.refresh(row)
            return old, _inventory_record(row)

        old, new = await self._run("inventory", _adjust)
        logger.info(
            "%s stock adjusted item_id=%s from=%s to=%s",
            LOG_PREFIX,
            item_id,
            old.current_stock,
            new.current_stock,
        )
        self.feed.publish(InventoryUpdated(new=new, old=old))
        return new

    async def update_inventory_item(self, restaurant_id: str, item_id: str, values: dict[str, Any]) -> InventoryRecord:
        def _update(db: Session) -> tuple[InventoryRecord, InventoryRecord]:
            row = _owned_row(db, InventoryItem, "inventory", restaurant_id, item_id)
            old = _inventory_record(row)
            changes = _pick(values, INVENTORY_FIELDS)
            if changes.get("current_stock") is not None and float(changes["current_stock"]) < 0:
                raise ConstraintViolationError(f"stock for {row.name!r} cannot go below zero", table="inventory")
            for key, value in changes.items():
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            return old, _inventory_record(row)

        old, new = await self._run("inventory", _update)
        self.feed.publish(InventoryUpdated(new=new, old=old))
        return new

    async def delete_inventory_item(self, restaurant_id: str, item_id: str) -> InventoryRecord:
        def _delete(db: Session) -> InventoryRecord:
            row = _owned_row(db, InventoryItem, "inventory", restaurant_id, item_id)
            old = _inventory_record(row)
            db.query(RecipeItem).filter(RecipeItem.inventory_item_id == item_id).delete(synchronize_session=False)
            db.delete(row)
            db.commit()
            return old

        old = await self._run("inventory", _delete)
        self.feed.publish(InventoryDeleted(old=old))
        return old

    # Orders

    async def insert_order(self, draft: OrderDraft) -> OrderRecord:
        def _insert(db: Session) -> OrderRecord:
            exists = db.query(Restaurant.id).filter(Restaurant.id == draft.restaurant_id).first()
            if exists is None:
                raise RecordNotFoundError(
                    f"restaurant {draft.restaurant_id} not found",
                    table="restaurants",
                    record_id=draft.restaurant_id,
                )
            order = Order(
                restaurant_id=draft.restaurant_id,
                customer_name=draft.customer_name,
                customer_phone=draft.customer_phone,
                customer_address=draft.customer_address,
                latitude=draft.latitude,
                longitude=draft.longitude,
                order_details=[line.model_dump(mode="json") for line in draft.order_details],
                total_amount=draft.total_amount,
                status=INITIAL_STATUS.value,
                payment_method=draft.payment_method.value,
                order_type=draft.order_type.value,
                table_number=draft.table_number,
            )
            db.add(order)
            db.commit()
            db.refresh(order)
            return OrderRecord.model_validate(order)

        record = await self._run("orders", _insert)
        logger.info(
            "%s order inserted order_id=%s restaurant_id=%s total=%s",
            LOG_PREFIX,
            record.id,
            record.restaurant_id,
            record.total_amount,
        )
        self.feed.publish(OrderInserted(new=record))
        return record

    async def get_order(self, order_id: str) -> OrderRecord:
        def _load(db: Session) -> OrderRecord:
            order = db.query(Order).filter(Order.id == order_id).first()
            if order is None:
                raise RecordNotFoundError(f"order {order_id} not found", table="orders", record_id=order_id)
            return OrderRecord.model_validate(order)

        return await self._run("orders", _load)

    async def list_orders(self, restaurant_id: str) -> list[OrderRecord]:
        def _load(db: Session) -> list[OrderRecord]:
            rows = (
                db.query(Order)
                .filter(Order.restaurant_id == restaurant_id)
                .order_by(desc(Order.created_at), desc(Order.id))
                .all()
            )
            return [OrderRecord.model_validate(row) for row in rows]

        return await self._run("orders", _load)

    async def update_order_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new: OrderStatus,
        *,
        restaurant_id: str | None = None,
    ) -> OrderRecord:
        """Conditional ``status`` update keyed by id and the expected status."""

        def _update(db: Session) -> tuple[OrderRecord, OrderRecord]:
            order = db.query(Order).filter(Order.id == order_id).first()
            if order is None:
                raise RecordNotFoundError(f"order {order_id} not found", table="orders", record_id=order_id)
            if restaurant_id is not None and order.restaurant_id != restaurant_id:
                raise PermissionDeniedError(f"order {order_id} belongs to another restaurant", table="orders")
            old = OrderRecord.model_validate(order)
            updated = (
                db.query(Order)
                .filter(Order.id == order_id, Order.status == expected.value)
                .update({Order.status: new.value}, synchronize_session=False)
            )
            if not updated:
                db.rollback()
                raise StaleWriteError(
                    f"order {order_id} is no longer {expected.value}",
                    table="orders",
                    current=old.status.value,
                )
            db.commit()
            return old, old.model_copy(update={"status": new})

        old, record = await self._run("orders", _update)
        logger.info(
            "%s order status changed order_id=%s from=%s to=%s",
            LOG_PREFIX,
            order_id,
            old.status.value,
            record.status.value,
        )
        self.feed.publish(OrderUpdated(new=record, old=old))
        return record

    # Reviews

    async def list_reviews(self, restaurant_id: str, *, visible_only: bool = False) -> list[ReviewRecord]:
        def _load(db: Session) -> list[ReviewRecord]:
            query = db.query(Review).filter(Review.restaurant_id == restaurant_id)
            if visible_only:
                query = query.filter(Review.is_visible.is_(True))
            rows = query.order_by(desc(Review.created_at), desc(Review.id)).all()
            return [ReviewRecord.model_validate(row) for row in rows]

        return await self._run("reviews", _load)

    async def set_review_visibility(self, restaurant_id: str, review_id: str, is_visible: bool) -> ReviewRecord:
        def _toggle(db: Session) -> ReviewRecord:
            review = _owned_row(db, Review, "reviews", restaurant_id, review_id)
            review.is_visible = is_visible
            db.commit()
            db.refresh(review)
            return ReviewRecord.model_validate(review)

        return await self._run("reviews", _toggle)
