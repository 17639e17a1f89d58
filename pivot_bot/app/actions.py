#!/usr/bin/env python3
"""
Action executor: persists the records that conversation actions ask for.

Actions arrive as a type plus a snapshot of context fields. Each payload is
validated with the domain record models and written with SQLAlchemy. Any
failure rolls the transaction back and surfaces as ActionError, so the
controller can keep the conversation on the state that emitted the action.
"""

from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..data.database import SessionLocal, create_tables
from ..data.models import Contact, Product, Restaurant, Supplier
from ..schemas.domain import ContactRecord, RestaurantRecord, SupplierRecord
from ..schemas.state_models import Action, ActionType
from ..utils.logger import get_logger
from ..utils.security import mask_pii

log = get_logger("actions")


class ActionError(Exception):
    """An action could not be validated or persisted."""

    def __init__(self, action_type: str, message: str):
        self.action_type = action_type
        super().__init__(f"{action_type}: {message}")


class ActionExecutor:
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        if session_factory is None:
            create_tables()
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.handlers: Dict[ActionType, Callable[[Session, Dict[str, Any]], Dict[str, Any]]] = {
            ActionType.CREATE_RESTAURANT: self._create_restaurant,
            ActionType.ACTIVATE_RESTAURANT: self._activate_restaurant,
            ActionType.CREATE_SUPPLIER: self._create_supplier,
        }

    def execute(self, action: Action) -> Dict[str, Any]:
        """
        Run one action in its own transaction.

        Args:
            action: Action emitted by the engine

        Returns:
            Small summary of what was written (ids)

        Raises:
            ActionError: payload invalid or database write failed
        """
        handler = self.handlers.get(action.type)
        if handler is None:
            raise ActionError(str(action.type), "no handler registered")

        db = self.session_factory()
        try:
            result = handler(db, action.payload)
            db.commit()
            log.info(f"[ACTION] {action.type.value} done: {result}")
            return result
        except ValidationError as e:
            db.rollback()
            log.error(f"[ACTION] {action.type.value} payload invalid: {e.error_count()} errors")
            raise ActionError(action.type.value, f"invalid payload: {e}") from e
        except SQLAlchemyError as e:
            db.rollback()
            log.error(f"[ACTION] {action.type.value} database error: {e}")
            raise ActionError(action.type.value, f"database error: {e}") from e
        except ActionError:
            db.rollback()
            raise
        finally:
            db.close()

    def _create_restaurant(self, db: Session, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = RestaurantRecord(
            legal_id=payload.get("legalId"),
            legal_name=payload.get("companyName"),
            name=payload.get("restaurantName"),
            years_active=payload.get("yearsActive"),
            payment_provider=payload.get("paymentMethod") or "trial",
            contact=ContactRecord(
                whatsapp=payload.get("contactNumber"),
                name=payload.get("contactName"),
                email=payload.get("contactEmail"),
            ),
        )

        # registering the same legal id again updates it, so retries are safe
        restaurant = db.get(Restaurant, record.legal_id)
        if restaurant is None:
            restaurant = Restaurant(legal_id=record.legal_id)
            db.add(restaurant)
        restaurant.legal_name = record.legal_name
        restaurant.name = record.name
        restaurant.years_active = record.years_active
        restaurant.payment_provider = record.payment_provider
        restaurant.is_activated = record.payment_provider == "trial"

        contact = next((c for c in restaurant.contacts if c.whatsapp == record.contact.whatsapp), None)
        if contact is None:
            contact = Contact(whatsapp=record.contact.whatsapp)
            restaurant.contacts.append(contact)
        contact.name = record.contact.name
        contact.role = record.contact.role
        contact.email = record.contact.email

        db.flush()
        log.info(f"[ACTION] Restaurant {record.legal_id} saved for {mask_pii(record.contact.whatsapp)}")
        return {"restaurant_id": record.legal_id, "contact_id": contact.id}

    def _activate_restaurant(self, db: Session, payload: Dict[str, Any]) -> Dict[str, Any]:
        legal_id = payload.get("legalId")
        restaurant = db.get(Restaurant, legal_id) if legal_id else None
        if restaurant is None:
            raise ActionError(ActionType.ACTIVATE_RESTAURANT.value, f"restaurant {legal_id} is not registered")
        restaurant.is_activated = True
        db.flush()
        log.info(f"[ACTION] Restaurant {legal_id} activated after payment")
        return {"restaurant_id": legal_id, "activated": True}

    def _create_supplier(self, db: Session, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = SupplierRecord(
            restaurant_id=payload.get("legalId") or "",
            name=payload.get("supplierName"),
            whatsapp=payload.get("supplierWhatsapp"),
            categories=payload.get("supplierCategories") or [],
            reminders=payload.get("supplierReminders") or [],
            products=payload.get("supplierProducts") or [],
        )

        if db.get(Restaurant, record.restaurant_id) is None:
            raise ActionError(ActionType.CREATE_SUPPLIER.value, f"restaurant {record.restaurant_id} is not registered")

        supplier = (
            db.query(Supplier)
            .filter(Supplier.restaurant_id == record.restaurant_id, Supplier.whatsapp == record.whatsapp)
            .one_or_none()
        )
        if supplier is None:
            supplier = Supplier(restaurant_id=record.restaurant_id, whatsapp=record.whatsapp)
            db.add(supplier)
        supplier.name = record.name
        supplier.categories = list(record.categories)
        supplier.reminders = [r.model_dump() for r in record.reminders]
        supplier.products = [
            Product(
                name=p.name,
                unit=p.unit,
                emoji=p.emoji,
                par_midweek=p.par_midweek,
                par_weekend=p.par_weekend,
            )
            for p in record.products
        ]

        db.flush()
        return {"supplier_id": supplier.id, "products": len(record.products)}
