"""
Payment Gate for MindfulPay

This module ties together all the components and defines the
end-to-end payment flow:

    validate -> blocklist -> limits -> ledger -> dispatch

with the emergency override for blocked payments:

    blocked -> emergency prompt -> ledger (tagged emergency) -> dispatch

DESIGN DECISION: The gate enforces the boundaries:
- Nothing is checked until the input is valid
- The blocklist is consulted strictly before the limits
- A transaction is recorded before the UPI app is opened
- Every step is audited under one correlation id

A failed hand-off to the UPI app does NOT roll back the recorded
transaction; the attempt ends in the `failed` state and the user
decides what to do.
"""

from datetime import date
from typing import Any, Callable, NamedTuple, Optional

import structlog
from pydantic import ValidationError

from mindfulpay.audit import AuditLogger
from mindfulpay.config import get_settings
from mindfulpay.engine import (
    DailySpendingTracker,
    GoalBook,
    LimitPolicy,
    SpendingLedger,
    VendorBlocklist,
)
from mindfulpay.models.finance import ExpenseCategory, Transaction, TransactionType
from mindfulpay.models.payment import (
    BLOCKED_STATES,
    GateState,
    PaymentAttempt,
    PaymentRequest,
)
from mindfulpay.queries import DashboardQueries
from mindfulpay.services.storage import (
    FinanceRepository,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    StorageError,
)
from mindfulpay.services.upi import (
    InvalidPaymentCodeError,
    UpiPaymentDispatcher,
    parse_payment_code,
)
from mindfulpay.validation import PaymentValidationError, PaymentValidator


logger = structlog.get_logger(__name__)


class InvalidTransitionError(Exception):
    """The requested action is not possible from the attempt's current state."""

    def __init__(self, attempt: PaymentAttempt, action: str):
        self.state = attempt.state
        self.action = action
        super().__init__(f"Cannot {action} a payment in state '{attempt.state.value}'")


class PaymentGate:
    """
    Orchestrates one payment from submission to hand-off.

    Policy blocks come back as attempts in a blocked state; only
    invalid input, unreadable payment codes and illegal transitions
    raise.
    """

    def __init__(
        self,
        blocklist: VendorBlocklist,
        limit_policy: LimitPolicy,
        ledger: SpendingLedger,
        dispatcher: UpiPaymentDispatcher,
        daily_tracker: Optional[DailySpendingTracker] = None,
        validator: Optional[PaymentValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        override_rechecks_blocklist: Optional[bool] = None,
        today: Callable[[], date] = date.today,
    ):
        settings = get_settings()
        self._blocklist = blocklist
        self._limit_policy = limit_policy
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._daily_tracker = daily_tracker
        self._validator = validator or PaymentValidator()
        self._audit_logger = audit_logger
        self._override_rechecks_blocklist = (
            settings.limits.override_rechecks_blocklist
            if override_rechecks_blocklist is None
            else override_rechecks_blocklist
        )
        self._default_note = settings.payments.default_note
        self._emergency_tag = settings.payments.emergency_tag
        self._today = today

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def submit(
        self,
        payee_id: Optional[str],
        amount: Any,
        category: Optional[str] = None,
        note: Optional[str] = None,
        payee_name: Optional[str] = None,
    ) -> PaymentAttempt:
        """
        Run a payment through the gate.

        Returns:
            The attempt in `allowed`, `blocked_by_vendor`,
            `blocked_by_limit` or `failed`

        Raises:
            PaymentValidationError: If the input is invalid. Nothing
                is read or written in that case.
        """
        try:
            request = self._validator.build_request(
                payee_id, amount, category=category, note=note, payee_name=payee_name
            )
        except PaymentValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    issues=[
                        {"field": i.field, "type": i.issue_type, "message": i.message}
                        for i in e.issues
                    ],
                )
            raise

        attempt = PaymentAttempt(request=request)
        return await self._check_and_pay(attempt)

    async def submit_code(
        self,
        code: str,
        amount: Any = None,
        category: Optional[str] = None,
    ) -> PaymentAttempt:
        """
        Run a scanned `upi://pay?...` code through the gate.

        `amount` is used when the code carries none; an amount in the
        code wins otherwise.

        Raises:
            InvalidPaymentCodeError: If the code cannot be parsed
            PaymentValidationError: If the resulting input is invalid
        """
        try:
            payment_code = parse_payment_code(code)
        except InvalidPaymentCodeError as e:
            logger.warning("payment_code_rejected", reason=str(e))
            if self._audit_logger:
                await self._audit_logger.log_payment_code_rejected(reason=str(e))
            raise

        return await self.submit(
            payment_code.payee_id,
            payment_code.amount if payment_code.amount is not None else amount,
            category=category,
            note=payment_code.note,
            payee_name=payment_code.payee_name,
        )

    async def _check_and_pay(self, attempt: PaymentAttempt) -> PaymentAttempt:
        request = attempt.request
        log = logger.bind(
            attempt_id=str(attempt.attempt_id),
            correlation_id=str(attempt.correlation_id),
        )

        attempt.move_to(GateState.CHECKING)
        if self._audit_logger:
            await self._audit_logger.log_payment_submitted(
                attempt_id=attempt.attempt_id,
                payee_id=request.payee_id,
                amount=str(request.amount),
                category=request.category,
                correlation_id=attempt.correlation_id,
            )

        # 1. Vendor blocklist
        check = await self._blocklist.check(request.payee_id)
        attempt.blocklist_check = check
        if check.resolve(self._blocklist.failure_policy):
            attempt.move_to(GateState.BLOCKED_BY_VENDOR)
            log.info("payment_blocked_by_vendor", payee_id=request.payee_id)
            if self._audit_logger:
                await self._audit_logger.log_vendor_blocked(
                    attempt_id=attempt.attempt_id,
                    payee_id=request.payee_id,
                    lookup_error=check.error,
                    correlation_id=attempt.correlation_id,
                )
            return attempt

        # 2. Spending limits
        try:
            decision = await self._limit_policy.evaluate(request.amount, request.category)
        except StorageError as e:
            return await self._fail(attempt, f"Could not read spending history: {e}")

        attempt.limit_decision = decision
        if not decision.allowed:
            attempt.move_to(GateState.BLOCKED_BY_LIMIT)
            log.info(
                "payment_blocked_by_limit",
                scope=decision.scope.value,
                limit=str(decision.limit),
                spent=str(decision.spent),
            )
            if self._audit_logger:
                await self._audit_logger.log_limit_exceeded(
                    attempt_id=attempt.attempt_id,
                    scope=decision.scope.value,
                    limit=str(decision.limit),
                    spent=str(decision.spent),
                    amount=str(request.amount),
                    correlation_id=attempt.correlation_id,
                )
            return attempt

        # 3. Record, then hand off
        if not await self._record_and_dispatch(attempt, emergency=False):
            return attempt

        attempt.move_to(GateState.ALLOWED)
        log.info("payment_allowed", transaction_id=attempt.transaction.id)
        if self._audit_logger:
            await self._audit_logger.log_payment_allowed(
                attempt_id=attempt.attempt_id,
                correlation_id=attempt.correlation_id,
            )
        return attempt

    # -------------------------------------------------------------------------
    # User decisions on a blocked payment
    # -------------------------------------------------------------------------

    async def cancel(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """Abandon a blocked payment. Nothing is recorded or dispatched."""
        if attempt.state not in BLOCKED_STATES and attempt.state != GateState.EMERGENCY_PROMPT:
            raise InvalidTransitionError(attempt, "cancel")

        from_state = attempt.state
        attempt.move_to(GateState.CANCELLED)
        logger.info(
            "payment_cancelled",
            attempt_id=str(attempt.attempt_id),
            from_state=from_state.value,
        )
        if self._audit_logger:
            await self._audit_logger.log_payment_cancelled(
                attempt_id=attempt.attempt_id,
                from_state=from_state.value,
                correlation_id=attempt.correlation_id,
            )
        return attempt

    async def request_override(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """Move a blocked payment to the emergency confirmation prompt."""
        if attempt.state not in BLOCKED_STATES:
            raise InvalidTransitionError(attempt, "request an override for")
        if self._override_rechecks_blocklist and attempt.state == GateState.BLOCKED_BY_VENDOR:
            raise InvalidTransitionError(attempt, "override a vendor block on")

        attempt.blocked_state = attempt.state
        attempt.move_to(GateState.EMERGENCY_PROMPT)
        if self._audit_logger:
            await self._audit_logger.log_override_requested(
                attempt_id=attempt.attempt_id,
                blocked_state=attempt.blocked_state.value,
                correlation_id=attempt.correlation_id,
            )
        return attempt

    async def confirm_override(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """
        Pay anyway after the user confirmed the emergency.

        Limits are not evaluated again. The blocklist is only
        consulted again when override_rechecks_blocklist is set.
        """
        if attempt.state != GateState.EMERGENCY_PROMPT:
            raise InvalidTransitionError(attempt, "confirm an override for")

        if self._override_rechecks_blocklist:
            check = await self._blocklist.check(attempt.request.payee_id)
            attempt.blocklist_check = check
            if check.resolve(self._blocklist.failure_policy):
                return await self._fail(
                    attempt,
                    f"Payments to {attempt.request.payee_id} are blocked",
                )

        if not await self._record_and_dispatch(attempt, emergency=True):
            return attempt

        attempt.move_to(GateState.OVERRIDE_APPROVED)
        logger.warning(
            "emergency_override_approved",
            attempt_id=str(attempt.attempt_id),
            blocked_state=attempt.blocked_state.value,
            transaction_id=attempt.transaction.id,
        )
        if self._audit_logger:
            await self._audit_logger.log_override_approved(
                attempt_id=attempt.attempt_id,
                transaction_id=attempt.transaction.id,
                blocked_state=attempt.blocked_state.value,
                correlation_id=attempt.correlation_id,
            )
        return attempt

    # -------------------------------------------------------------------------
    # Side effects
    # -------------------------------------------------------------------------

    def _build_transaction(self, request: PaymentRequest, emergency: bool) -> Transaction:
        payee = request.payee_name or request.payee_id
        description = request.note or f"Payment to {payee}"
        tags = []
        if emergency:
            description = f"Emergency override: {description}"
            tags.append(self._emergency_tag)

        return Transaction(
            amount=request.amount,
            type=TransactionType.EXPENSE,
            category=request.category or ExpenseCategory.OTHER.value,
            description=description,
            date=self._today(),
            merchant=request.payee_id,
            tags=tags,
        )

    async def _record_and_dispatch(self, attempt: PaymentAttempt, emergency: bool) -> bool:
        """
        Append the transaction, then open the UPI app.

        Returns False (with the attempt moved to `failed`) if either step failed.
        """
        request = attempt.request
        try:
            transaction = self._build_transaction(request, emergency)
        except ValidationError as e:
            await self._fail(attempt, f"Could not build the transaction: {e}")
            return False

        try:
            attempt.transaction = await self._ledger.append(
                transaction,
                correlation_id=attempt.correlation_id,
            )
        except StorageError as e:
            await self._fail(attempt, f"Could not record the transaction: {e}")
            return False

        result = await self._dispatcher.dispatch(
            request.payee_id,
            request.amount,
            request.note or self._default_note,
            payee_name=request.payee_name,
        )
        attempt.dispatch_result = result

        if not result.success:
            if self._audit_logger:
                await self._audit_logger.log_dispatch_failed(
                    attempt_id=attempt.attempt_id,
                    error_message=result.error_message or "unknown error",
                    transaction_id=attempt.transaction.id,
                    correlation_id=attempt.correlation_id,
                )
            await self._fail(attempt, f"Could not open UPI app: {result.error_message}")
            return False

        if self._audit_logger:
            await self._audit_logger.log_payment_dispatched(
                attempt_id=attempt.attempt_id,
                uri=result.uri,
                correlation_id=attempt.correlation_id,
            )

        if self._daily_tracker:
            try:
                await self._daily_tracker.record(request.amount)
            except StorageError as e:
                # the payment already went out; only the counter is stale
                logger.error("daily_counter_update_failed", error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="daily_counter_update_failed",
                        error_message=str(e),
                        correlation_id=attempt.correlation_id,
                    )
        return True

    async def _fail(self, attempt: PaymentAttempt, reason: str) -> PaymentAttempt:
        attempt.failure_reason = reason
        attempt.move_to(GateState.FAILED)
        logger.error(
            "payment_failed",
            attempt_id=str(attempt.attempt_id),
            reason=reason,
        )
        return attempt


class AppComponents(NamedTuple):
    repository: FinanceRepository
    audit_logger: AuditLogger
    blocklist: VendorBlocklist
    ledger: SpendingLedger
    limit_policy: LimitPolicy
    goals: GoalBook
    daily_tracker: DailySpendingTracker
    gate: PaymentGate
    dashboard: DashboardQueries


def create_store(backend: Optional[str] = None) -> KeyValueStoreInterface:
    """Build the key-value store for the configured backend."""
    backend = backend or get_settings().storage.backend
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "json_file":
        return JsonFileKeyValueStore()
    if backend == "google_sheets":
        return GoogleSheetsKeyValueStore()
    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    backend: Optional[str] = None,
    store: Optional[KeyValueStoreInterface] = None,
    dispatcher: Optional[UpiPaymentDispatcher] = None,
    today: Callable[[], date] = date.today,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: Storage backend name; defaults to StorageSettings.backend
        store: Use this store instead of building one
        dispatcher: Use this dispatcher instead of the system one
        today: Clock shared by every date-dependent component
    """
    repository = FinanceRepository(store or create_store(backend))
    audit_logger = AuditLogger(KeyValueAuditStorage(repository))

    blocklist = VendorBlocklist(repository, audit_logger=audit_logger)
    ledger = SpendingLedger(repository, audit_logger=audit_logger)
    limit_policy = LimitPolicy(repository, ledger, today=today)
    goals = GoalBook(repository)
    daily_tracker = DailySpendingTracker(repository, today=today)

    gate = PaymentGate(
        blocklist=blocklist,
        limit_policy=limit_policy,
        ledger=ledger,
        dispatcher=dispatcher or UpiPaymentDispatcher(),
        daily_tracker=daily_tracker,
        audit_logger=audit_logger,
        today=today,
    )
    dashboard = DashboardQueries(ledger, goals, limit_policy, today=today)

    return AppComponents(
        repository=repository,
        audit_logger=audit_logger,
        blocklist=blocklist,
        ledger=ledger,
        limit_policy=limit_policy,
        goals=goals,
        daily_tracker=daily_tracker,
        gate=gate,
        dashboard=dashboard,
    )
