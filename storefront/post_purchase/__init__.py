from .cache import LocalOrderCache, OrderResolver
from .clients import ConfirmationClient, IntakeClient
from .wizard import IntakeWizard
from .workflow import TRANSITIONS, InvalidTransition, PostPurchaseWorkflow, WorkflowState

__all__ = [
    "ConfirmationClient",
    "IntakeClient",
    "IntakeWizard",
    "InvalidTransition",
    "LocalOrderCache",
    "OrderResolver",
    "PostPurchaseWorkflow",
    "TRANSITIONS",
    "WorkflowState",
]
