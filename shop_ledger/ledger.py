"""
Ledger Module

Validates and applies every mutating shop operation: credit sales, loan
repayments, stock adjustments, and user/client/product maintenance.

Each public method runs under the store's single-writer lock and follows
the same sequence: check every precondition, mutate the store, append
notifications, persist the snapshot, return. A failed precondition raises
before anything is touched, and a failed snapshot write rolls the store
back to its state on entry, so no operation ever leaves partial effects.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional

from .auth import IdentityClaim
from .clients import Client
from .errors import AuthError, ConflictError, ForbiddenError, InternalError, ValidationError
from .logging_config import get_logger, log_action
from .notifications import Notification, NotificationType
from .products import Product
from .records import parse_decimal
from .storage import EntityStore, SnapshotStorage
from .transactions import LineItem, LoanPayment, Sale
from .users import Role, User


logger = get_logger("shop_ledger.ledger")

USER_UPDATABLE_FIELDS = ("username", "name", "language", "role")


@dataclass
class LoanPaymentResult:
    """Outcome of a loan repayment"""
    client: Client
    payment: Decimal
    remaining_loan: Decimal
    transaction: LoanPayment


@dataclass
class StockAdjustment:
    """Outcome of a manual stock overwrite"""
    product: Product
    old_stock: int
    new_stock: int


class LedgerEngine:
    """
    Enforces credit and stock invariants over an EntityStore.

    The engine keeps no state of its own: it works on the store and snapshot
    backend it was handed, and every call reads the current store contents.
    """

    def __init__(
        self,
        store: EntityStore,
        storage: Optional[SnapshotStorage] = None,
        password_min_length: int = 3,
        currency_label: str = "FRW",
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.storage = storage
        self.password_min_length = password_min_length
        self.currency_label = currency_label
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Sales and loans

    def record_sale(
        self,
        actor: IdentityClaim,
        client_id: int,
        items: Iterable[Mapping[str, Any]],
        paid: Any
    ) -> Sale:
        """
        Record a sale for a client.

        The unpaid remainder (total - paid) becomes new loan on the client.
        A client that already owes money may still buy, but only when the
        new sale is fully paid.

        Raises:
            NotFoundError: unknown client
            ValidationError: empty or malformed items, negative or excess payment
            ConflictError: new loan requested while a balance is outstanding
        """
        with self._writing():
            client = self.store.get_client(client_id)
            line_items = self._build_line_items(items)
            paid_amount = self._amount(paid, "paid")
            if paid_amount < 0:
                raise ValidationError("Paid amount cannot be negative")

            total = sum((item.line_total for item in line_items), Decimal('0'))
            if paid_amount > total:
                raise ValidationError("Paid amount exceeds sale total")

            loan = total - paid_amount
            if client.has_loan and loan > 0:
                raise ConflictError("Client has existing loan - cannot add new loan")

            now = self._clock()
            sale = Sale(
                id=self.store.next_id(),
                client_id=client.id,
                items=tuple(line_items),
                total=total,
                paid=paid_amount,
                loan=loan,
                date=now,
                user_id=actor.id,
            )
            self.store.transactions.append(sale)

            if loan > 0:
                client.loan += loan
                self._notify(
                    f"New loan: {client.name} - {self._money(loan)}",
                    NotificationType.WARNING, now
                )
            self._notify(
                f"Sale: {client.name} - {self._money(paid_amount)} paid",
                NotificationType.SALE, now
            )

            self._persist()
            log_action(
                logger, "info", f"Sale {sale.id} recorded for client {client.id}",
                user_id=actor.id, action="record_sale", resource="transactions",
                extra={"total": str(total), "paid": str(paid_amount), "loan": str(loan)}
            )
            return sale

    def record_loan_payment(
        self,
        actor: IdentityClaim,
        client_id: int,
        amount: Any
    ) -> LoanPaymentResult:
        """
        Apply a repayment to a client's outstanding loan.

        Raises:
            NotFoundError: unknown client
            ConflictError: client has no loan, or payment exceeds the loan
            ValidationError: non-positive amount
        """
        with self._writing():
            client = self.store.get_client(client_id)
            payment = self._amount(amount, "amount")
            if not client.has_loan:
                raise ConflictError("Client has no loan")
            if payment <= 0:
                raise ValidationError("Invalid payment amount")
            if payment > client.loan:
                raise ConflictError("Payment exceeds loan amount")

            now = self._clock()
            previous_loan = client.loan
            client.loan = previous_loan - payment

            transaction = LoanPayment(
                id=self.store.next_id(),
                client_id=client.id,
                amount=payment,
                previous_loan=previous_loan,
                new_loan=client.loan,
                date=now,
                user_id=actor.id,
            )
            self.store.transactions.append(transaction)
            self._notify(
                f"Loan payment: {client.name} paid {self._money(payment)}",
                NotificationType.SUCCESS, now
            )

            self._persist()
            log_action(
                logger, "info", f"Loan payment {transaction.id} for client {client.id}",
                user_id=actor.id, action="record_loan_payment", resource="loans",
                extra={"amount": str(payment), "remaining_loan": str(client.loan)}
            )
            return LoanPaymentResult(
                client=client,
                payment=payment,
                remaining_loan=client.loan,
                transaction=transaction,
            )

    # Stock

    def adjust_stock(self, actor: IdentityClaim, product_id: int, new_stock: Any) -> StockAdjustment:
        """Overwrite a product's stock level; untracked products start from 0"""
        with self._writing():
            product = self.store.get_product(product_id)
            stock = self._stock(new_stock)
            if stock is None:
                raise ValidationError("Stock is required")

            old_stock = product.stock if product.is_tracked else 0
            product.stock = stock
            self._notify(
                f"Stock updated: {product.name} - {old_stock} -> {stock}",
                NotificationType.STOCK
            )

            self._persist()
            log_action(
                logger, "info", f"Stock for product {product.id} set to {stock}",
                user_id=actor.id, action="adjust_stock", resource="products",
                extra={"old_stock": old_stock, "new_stock": stock}
            )
            return StockAdjustment(product=product, old_stock=old_stock, new_stock=stock)

    # Clients

    def create_client(self, actor: IdentityClaim, fields: Mapping[str, Any]) -> Client:
        with self._writing():
            data = dict(fields)
            name = (data.pop("name", None) or "").strip()
            if not name:
                raise ValidationError("Client name is required")
            phone = data.pop("phone", None) or ""
            loan = self._amount(data.pop("loan", None) or Decimal('0'), "loan")
            if loan < 0:
                raise ValidationError("Loan cannot be negative")
            data.pop("id", None)

            client = Client(
                id=self.store.next_id(),
                name=name,
                phone=str(phone),
                loan=loan,
                extra=data,
            )
            self.store.clients.append(client)
            self._notify(f"Client {client.name} added", NotificationType.CLIENT)

            self._persist()
            log_action(
                logger, "info", f"Client {client.id} created",
                user_id=actor.id, action="create_client", resource="clients"
            )
            return client

    def update_client(self, actor: IdentityClaim, client_id: int, fields: Mapping[str, Any]) -> Client:
        """Shallow-merge fields into a client; the loan balance is not editable"""
        with self._writing():
            client = self.store.get_client(client_id)
            data = dict(fields)
            data.pop("id", None)
            if "loan" in data:
                raise ValidationError("Loan balance changes only through sales and payments")
            if "name" in data and not (data["name"] or "").strip():
                raise ValidationError("Client name is required")

            if "name" in data:
                client.name = data.pop("name").strip()
            if "phone" in data:
                client.phone = str(data.pop("phone") or "")
            client.extra.update(data)
            self._notify(f"Client {client.name} updated", NotificationType.INFO)

            self._persist()
            log_action(
                logger, "info", f"Client {client.id} updated",
                user_id=actor.id, action="update_client", resource="clients",
                extra={"fields": sorted(fields)}
            )
            return client

    def delete_client(self, actor: IdentityClaim, client_id: int) -> Client:
        """
        Remove a client with no outstanding loan.

        The client's transactions are removed with it, so its sales and
        payments disappear from every later report.
        """
        with self._writing():
            client = self.store.get_client(client_id)
            if client.has_loan:
                raise ConflictError("Cannot delete client with active loan")

            self.store.clients.remove(client)
            self.store.transactions[:] = [
                t for t in self.store.transactions if t.client_id != client.id
            ]
            self._notify(f"Client {client.name} deleted", NotificationType.WARNING)

            self._persist()
            log_action(
                logger, "info", f"Client {client.id} deleted with its transactions",
                user_id=actor.id, action="delete_client", resource="clients"
            )
            return client

    # Products

    def create_product(self, actor: IdentityClaim, fields: Mapping[str, Any]) -> Product:
        with self._writing():
            data = dict(fields)
            name = (data.pop("name", None) or "").strip()
            if not name:
                raise ValidationError("Product name is required")
            price = self._price(data.pop("price", None))
            stock = self._stock(data.pop("stock", None))
            data.pop("id", None)

            product = Product(
                id=self.store.next_id(),
                name=name,
                price=price,
                stock=stock,
                extra=data,
            )
            self.store.products.append(product)

            self._persist()
            log_action(
                logger, "info", f"Product {product.id} created",
                user_id=actor.id, action="create_product", resource="products"
            )
            return product

    def update_product(self, actor: IdentityClaim, product_id: int, fields: Mapping[str, Any]) -> Product:
        with self._writing():
            product = self.store.get_product(product_id)
            data = dict(fields)
            data.pop("id", None)
            if "name" in data and not (data["name"] or "").strip():
                raise ValidationError("Product name is required")
            price = self._price(data["price"]) if "price" in data else product.price
            stock = self._stock(data["stock"]) if "stock" in data else product.stock

            if "name" in data:
                product.name = data.pop("name").strip()
            data.pop("price", None)
            data.pop("stock", None)
            product.price = price
            product.stock = stock
            product.extra.update(data)
            self._notify(f"Product {product.name} updated", NotificationType.INFO)

            self._persist()
            log_action(
                logger, "info", f"Product {product.id} updated",
                user_id=actor.id, action="update_product", resource="products",
                extra={"fields": sorted(fields)}
            )
            return product

    def delete_product(self, actor: IdentityClaim, product_id: int) -> Product:
        with self._writing():
            product = self.store.get_product(product_id)
            self.store.products.remove(product)
            self._notify(f"Product {product.name} deleted", NotificationType.WARNING)

            self._persist()
            log_action(
                logger, "info", f"Product {product.id} deleted",
                user_id=actor.id, action="delete_product", resource="products"
            )
            return product

    # Users

    def authenticate(self, username: str, password: str) -> User:
        if not username or not password:
            raise ValidationError("Username and password required")
        with self.store.lock:
            user = self.store.find_user_by_username(username)
            if not user or not user.verify_password(password):
                log_action(
                    logger, "warning", "Login failed",
                    action="login_failed", resource="auth", extra={"username": username}
                )
                raise AuthError("Invalid credentials")
            log_action(logger, "info", "Login successful", user_id=user.id,
                       action="login", resource="auth")
            return user

    def create_user(
        self,
        actor: IdentityClaim,
        username: str,
        password: str,
        name: Optional[str] = None,
        language: str = "en"
    ) -> User:
        """Create a standard user; administrators only"""
        with self._writing():
            if not actor.is_admin:
                raise ForbiddenError("Only admin can create users")
            username = (username or "").strip()
            if not username:
                raise ValidationError("Username is required")
            if self.store.find_user_by_username(username):
                raise ConflictError(f"Username {username} is already taken")
            self._check_password(password)

            user = User(
                id=self.store.next_id(),
                username=username,
                name=name or username,
                role=Role.STANDARD,
                language=language or "en",
            )
            user.set_password(password)
            self.store.users.append(user)
            self._notify(f"User {user.name} created by {actor.name}", NotificationType.USER)

            self._persist()
            log_action(
                logger, "info", f"User {user.id} created",
                user_id=actor.id, action="create_user", resource="users"
            )
            return user

    def update_user(self, actor: IdentityClaim, user_id: int, fields: Mapping[str, Any]) -> User:
        """Shallow-merge profile fields; only admins may edit others or change roles"""
        with self._writing():
            user = self.store.get_user(user_id)
            data = {k: v for k, v in fields.items() if k != "id"}
            unknown = [k for k in data if k not in USER_UPDATABLE_FIELDS]
            if unknown:
                raise ValidationError(f"Cannot update user fields: {', '.join(sorted(unknown))}")
            if user.id != actor.id and not actor.is_admin:
                raise ForbiddenError("Only admin can update other users")
            if "role" in data and data["role"] is not None and not actor.is_admin:
                raise ForbiddenError("Only admin can change roles")

            role = user.role
            if data.get("role") is not None:
                try:
                    role = Role(data["role"])
                except ValueError:
                    raise ValidationError(f"Unknown role: {data['role']}")
            if data.get("username"):
                other = self.store.find_user_by_username(data["username"])
                if other and other.id != user.id:
                    raise ConflictError(f"Username {data['username']} is already taken")

            if data.get("username"):
                user.username = data["username"]
            if data.get("name"):
                user.name = data["name"]
            if data.get("language"):
                user.language = data["language"]
            user.role = role
            self._notify(f"User {user.name} updated", NotificationType.INFO)

            self._persist()
            log_action(
                logger, "info", f"User {user.id} updated",
                user_id=actor.id, action="update_user", resource="users",
                extra={"fields": sorted(data)}
            )
            return user

    def update_profile(
        self,
        actor: IdentityClaim,
        name: Optional[str] = None,
        language: Optional[str] = None
    ) -> User:
        with self._writing():
            user = self.store.get_user(actor.id)
            if name:
                user.name = name
            if language:
                user.language = language
            self._notify(f"Profile updated for {user.name}", NotificationType.INFO)

            self._persist()
            log_action(logger, "info", "Profile updated", user_id=actor.id,
                       action="update_profile", resource="users")
            return user

    def set_language(self, actor: IdentityClaim, language: str) -> str:
        if not language:
            raise ValidationError("Language is required")
        with self._writing():
            user = self.store.get_user(actor.id)
            user.language = language
            self._persist()
            return language

    def change_password(
        self,
        actor: IdentityClaim,
        user_id: int,
        current_password: Optional[str],
        new_password: Optional[str]
    ) -> User:
        """
        Change a password.

        Users changing their own password must supply the current one;
        administrators changing someone else's password skip that check.
        """
        with self._writing():
            user = self.store.get_user(user_id)
            if user.id == actor.id:
                if not user.verify_password(current_password or ""):
                    raise ValidationError("Current password is incorrect")
            elif not actor.is_admin:
                raise ForbiddenError("Only admin can change other users passwords")
            self._check_password(new_password)

            user.set_password(new_password)
            self._notify(f"Password changed for user {user.name}", NotificationType.SECURITY)

            self._persist()
            log_action(
                logger, "info", f"Password changed for user {user.id}",
                user_id=actor.id, action="change_password", resource="users"
            )
            return user

    def reset_password(self, actor: IdentityClaim, user_id: int, new_password: Optional[str]) -> User:
        with self._writing():
            if not actor.is_admin:
                raise ForbiddenError("Only admin can reset passwords")
            user = self.store.get_user(user_id)
            self._check_password(new_password)

            user.set_password(new_password)
            self._notify(f"Password reset by admin for user {user.name}", NotificationType.SECURITY)

            self._persist()
            log_action(
                logger, "info", f"Password reset for user {user.id}",
                user_id=actor.id, action="reset_password", resource="users"
            )
            return user

    def delete_user(self, actor: IdentityClaim, user_id: int) -> User:
        with self._writing():
            if not actor.is_admin:
                raise ForbiddenError("Only admin can delete users")
            user = self.store.get_user(user_id)
            if user.id == actor.id:
                raise ConflictError("Cannot delete your own account")

            self.store.users.remove(user)
            self._notify(f"User {user.name} deleted by {actor.name}", NotificationType.WARNING)

            self._persist()
            log_action(
                logger, "info", f"User {user.id} deleted",
                user_id=actor.id, action="delete_user", resource="users"
            )
            return user

    # Notifications

    def delete_notification(self, actor: IdentityClaim, notification_id: int) -> Notification:
        with self._writing():
            notification = self.store.notifications.remove(notification_id)
            self._persist()
            log_action(logger, "info", f"Notification {notification_id} deleted",
                       user_id=actor.id, action="delete_notification", resource="notifications")
            return notification

    def clear_notifications(self, actor: IdentityClaim) -> int:
        with self._writing():
            removed = self.store.notifications.clear()
            self._persist()
            log_action(logger, "info", f"Cleared {removed} notifications",
                       user_id=actor.id, action="clear_notifications", resource="notifications")
            return removed

    # Helpers

    def _build_line_items(self, items: Iterable[Mapping[str, Any]]) -> List[LineItem]:
        line_items = []
        for raw in items or []:
            product_id = raw.get("product_id")
            name = raw.get("name")
            if not name and product_id is not None:
                product = self.store.find_product(int(product_id))
                name = product.name if product else None
            if not name:
                raise ValidationError("Each item needs a product name")

            price = self._price(raw.get("price"))
            quantity = raw.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError(f"Invalid quantity for {name}: {quantity!r}")

            line_items.append(LineItem(
                product_id=int(product_id) if product_id is not None else None,
                name=name,
                price=price,
                quantity=quantity,
                type=raw.get("type"),
            ))

        if not line_items:
            raise ValidationError("A sale needs at least one item")
        return line_items

    def _check_password(self, password: Optional[str]) -> None:
        if not password or len(password) < self.password_min_length:
            raise ValidationError(
                f"New password must be at least {self.password_min_length} characters"
            )

    @staticmethod
    def _amount(value: Any, field_name: str) -> Decimal:
        if value is None:
            raise ValidationError(f"{field_name} is required")
        try:
            return parse_decimal(value, field_name)
        except ValueError as e:
            raise ValidationError(str(e))

    def _price(self, value: Any) -> Decimal:
        price = self._amount(value, "price")
        if price < 0:
            raise ValidationError("Price cannot be negative")
        return price

    @staticmethod
    def _stock(value: Any) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValidationError(f"Invalid stock: {value!r}")
        try:
            stock = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid stock: {value!r}")
        if stock != value and not isinstance(value, str):
            raise ValidationError(f"Invalid stock: {value!r}")
        if stock < 0:
            raise ValidationError("Stock cannot be negative")
        return stock

    def _money(self, amount: Decimal) -> str:
        return f"{amount} {self.currency_label}"

    def _notify(self, message: str, notification_type: NotificationType,
                timestamp: Optional[datetime] = None) -> Notification:
        return self.store.notifications.append(
            message, notification_type, timestamp or self._clock()
        )

    @contextmanager
    def _writing(self) -> Iterator[None]:
        """
        Hold the writer lock for one operation.

        If the snapshot cannot be written the store is put back exactly as
        it was on entry, so a failed save never leaves its mutation behind.
        """
        with self.store.lock:
            before = self.store.to_dict() if self.storage is not None else None
            try:
                yield
            except InternalError:
                if before is not None:
                    self.store.restore(before)
                    logger.warning("Rolled back in-memory changes after failed save")
                raise

    def _persist(self) -> None:
        if self.storage is not None:
            self.storage.save(self.store)
