"""
Machine à états du parcours post-achat (côté client, coopératif).

LOADING_ORDER -> ERROR_DISPLAY                      (introuvable / expirée / indisponible, terminal)
LOADING_ORDER -> CHECKING_INTAKE -> INTAKE_FORM -> CONFETTI -> DONE
                                 -> CONFETTI -> DONE

- run() est ré-entrant: un second appel attend la même exécution, sans relancer
  ni le contrôle du questionnaire ni la notification d'achat.
- Le contrôle du questionnaire est consultatif: échec ou timeout => CONFETTI directement.
- Les confettis ne démarrent qu'une fois le contrôle résolu; leur délai est annulable.
"""
import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from storefront.config import CONFETTI_DURATION_SECONDS, DASHBOARD_PATH, INTAKE_STATUS_TIMEOUT_SECONDS
from storefront.errors import IntakeCheckFailed, OrderExpired, OrderUnavailable, OrderVisibilityError
from storefront.notifications.webhooks import CHECKOUT_SUCCESS
from storefront.orders.models import Confirmation
from .cache import OrderResolver
from .clients import IntakeClient
from .wizard import IntakeWizard

logger = logging.getLogger(__name__)


class WorkflowState(str, enum.Enum):
    LOADING_ORDER = "loading_order"
    ERROR_DISPLAY = "error_display"
    CHECKING_INTAKE = "checking_intake"
    INTAKE_FORM = "intake_form"
    CONFETTI = "confetti"
    DONE = "done"


TRANSITIONS = {
    WorkflowState.LOADING_ORDER: {WorkflowState.ERROR_DISPLAY, WorkflowState.CHECKING_INTAKE},
    WorkflowState.CHECKING_INTAKE: {WorkflowState.INTAKE_FORM, WorkflowState.CONFETTI},
    WorkflowState.INTAKE_FORM: {WorkflowState.CONFETTI},
    WorkflowState.CONFETTI: {WorkflowState.DONE},
    WorkflowState.ERROR_DISPLAY: set(),
    WorkflowState.DONE: set(),
}


class InvalidTransition(RuntimeError):
    pass


class PostPurchaseWorkflow:
    def __init__(
        self,
        resolver: OrderResolver,
        intake: IntakeClient,
        notifier=None,
        confetti_seconds: float = CONFETTI_DURATION_SECONDS,
        intake_timeout: float = INTAKE_STATUS_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.resolver = resolver
        self.intake = intake
        self.notifier = notifier
        self.confetti_seconds = confetti_seconds
        self.intake_timeout = intake_timeout
        self._sleep = sleep

        self.state = WorkflowState.LOADING_ORDER
        self.history: List[WorkflowState] = [self.state]
        self.confirmation: Optional[Confirmation] = None
        self.error: Optional[OrderVisibilityError] = None
        self.wizard: Optional[IntakeWizard] = None

        self._reached = {s: asyncio.Event() for s in WorkflowState}
        self._reached[self.state].set()
        self._run_task: Optional[asyncio.Task] = None
        self._intake_resolved: Optional[asyncio.Event] = None
        self._confetti_task: Optional[asyncio.Future] = None
        self._confetti_skipped = False
        self._submitting = False
        self._notified = False

    # --- transitions ---
    def _transition(self, target: WorkflowState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {target.value}")
        logger.debug("post_purchase.workflow %s -> %s", self.state.value, target.value)
        self.state = target
        self.history.append(target)
        self._reached[target].set()

    async def wait_for(self, state: WorkflowState) -> None:
        await self._reached[state].wait()

    @property
    def finished(self) -> bool:
        return not TRANSITIONS[self.state]

    # --- exécution ---
    async def run(self, order_number: Optional[str] = None) -> WorkflowState:
        if self._run_task is None:
            self._run_task = asyncio.ensure_future(self._run(order_number))
        return await asyncio.shield(self._run_task)

    def cancel(self) -> None:
        if self._run_task is not None and not self._run_task.done():
            self._run_task.cancel()

    async def _run(self, order_number: Optional[str]) -> WorkflowState:
        try:
            self.confirmation = await self.resolver.resolve(order_number)
        except OrderVisibilityError as e:
            self.error = e
            self._transition(WorkflowState.ERROR_DISPLAY)
            return self.state

        self._transition(WorkflowState.CHECKING_INTAKE)
        self._notify_purchase()

        completed = await self._check_intake()
        if completed is False:
            self.wizard = IntakeWizard()
            self._intake_resolved = asyncio.Event()
            self._transition(WorkflowState.INTAKE_FORM)
            await self._intake_resolved.wait()

        await self._play_confetti()
        return self.state

    async def _check_intake(self) -> Optional[bool]:
        try:
            return await asyncio.wait_for(self.intake.is_completed(), self.intake_timeout)
        except (IntakeCheckFailed, asyncio.TimeoutError):
            logger.warning("post_purchase.workflow intake check failed, skipping form", exc_info=True)
            return None

    def _notify_purchase(self) -> None:
        if self._notified or self.notifier is None or self.confirmation is None:
            return
        self._notified = True
        order = self.confirmation.order
        self.notifier.fire_and_forget(CHECKOUT_SUCCESS, order.customer_name, order.customer_email, order.total)

    async def _play_confetti(self) -> None:
        self._transition(WorkflowState.CONFETTI)
        self._confetti_task = asyncio.ensure_future(self._sleep(self.confetti_seconds))
        try:
            await self._confetti_task
        except asyncio.CancelledError:
            if not self._confetti_skipped:
                raise
        self._transition(WorkflowState.DONE)

    # --- actions utilisateur ---
    async def submit_intake(self) -> bool:
        """Envoie les réponses (best-effort) puis libère le passage aux confettis. False si rien à faire."""
        if self.state != WorkflowState.INTAKE_FORM or self.wizard is None or not self.wizard.is_complete:
            return False
        if self._submitting or self._intake_resolved.is_set():
            return False
        self._submitting = True
        try:
            await self.intake.submit(self.wizard.responses())
        finally:
            self._intake_resolved.set()
        return True

    def dismiss_intake(self) -> bool:
        if self.state != WorkflowState.INTAKE_FORM or self._intake_resolved.is_set():
            return False
        self._intake_resolved.set()
        return True

    def skip_confetti(self) -> None:
        if self.state == WorkflowState.CONFETTI and self._confetti_task is not None:
            self._confetti_skipped = True
            self._confetti_task.cancel()

    def error_view(self) -> Optional[Dict[str, Any]]:
        if self.error is None:
            return None
        expired = isinstance(self.error, OrderExpired)
        view = {
            "expired": expired,
            "retryable": isinstance(self.error, OrderUnavailable),
            "message": str(self.error),
            "orderNumber": self.error.order_number,
        }
        if expired:
            view["dashboardUrl"] = DASHBOARD_PATH
        return view
