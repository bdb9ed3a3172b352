"""TransactWise - LLM-assisted transaction matching and account interlinking for bookkeeping."""

__version__ = "0.1.0"

from transactwise.clients import ClaudeClient, GeminiClient, OpenAIClient, create_client
from transactwise.config import configure_logging, get_settings
from transactwise.errors import (
    DocumentStoreError,
    ImmutableTransactionError,
    InputError,
    InterlinkError,
    MatchingError,
    OperationInProgressError,
    ReasoningServiceError,
    ReviewError,
    TransactionNotFoundError,
    TransactWiseError,
)
from transactwise.interlink import InterlinkEngine, InterlinkResult
from transactwise.matching import MatchingEngine
from transactwise.models import (
    ChartOfAccount,
    Customer,
    EntityKind,
    MatchResult,
    RawTransaction,
    ReviewedTransaction,
    TransactionStatus,
    Vendor,
)
from transactwise.persistence import BulkPersistenceCoordinator, PersistenceReport
from transactwise.reasoning import ReasoningService
from transactwise.review import ReviewSession
from transactwise.session import BookkeepingSession
from transactwise.store import (
    CompanyScope,
    EntitySnapshot,
    EntityStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
)

__all__ = [
    # Version
    "__version__",
    # Session
    "BookkeepingSession",
    # Engines
    "MatchingEngine",
    "ReviewSession",
    "InterlinkEngine",
    "InterlinkResult",
    "BulkPersistenceCoordinator",
    "PersistenceReport",
    "ReasoningService",
    # Records
    "Vendor",
    "Customer",
    "ChartOfAccount",
    "EntityKind",
    "RawTransaction",
    "ReviewedTransaction",
    "TransactionStatus",
    "MatchResult",
    # Storage
    "CompanyScope",
    "EntityStore",
    "EntitySnapshot",
    "InMemoryDocumentStore",
    "FirestoreDocumentStore",
    # LLM Clients
    "ClaudeClient",
    "OpenAIClient",
    "GeminiClient",
    "create_client",
    # Errors
    "TransactWiseError",
    "InputError",
    "ReasoningServiceError",
    "MatchingError",
    "InterlinkError",
    "DocumentStoreError",
    "ReviewError",
    "TransactionNotFoundError",
    "ImmutableTransactionError",
    "OperationInProgressError",
    # Config
    "get_settings",
    "configure_logging",
]
