"""
Watchdom - phase-aware WHOIS domain monitor.

This package watches a domain's WHOIS record, speeds up polling as a
target drop time approaches, classifies every response into a registry
lifecycle state and reports the outcome on the terminal and through
optional notifications.
"""

__version__ = "0.1.0"
__author__ = "Watchdom Team"

from watchdom.exceptions import (
    WatchdomError,
    ValidationError,
    ParseError,
    TransportError,
    RateLimitError,
    ConfigError,
    NotificationError,
)
from watchdom.enums import (
    Phase,
    LifecycleStatus,
    ActivityCode,
    SessionOutcome,
    Verdict,
    GraceChoice,
    NotificationEvent,
    LogLevel,
    WHOISErrorCode,
    ValidationErrorCode,
)
from watchdom.config import (
    TLDConfig,
    RetryConfig,
    EmailConfig,
    WebhookConfig,
    NotificationConfig,
    LoggingConfig,
    WatchConfig,
    load_config_from_env,
)
from watchdom.models import (
    PollResult,
    PollSession,
    CompletionSummary,
)
from watchdom.time_source import (
    TimeSource,
    parse_epoch,
    format_time_display,
    format_clock,
    human_duration,
)
from watchdom.phase_engine import (
    determine_phase,
    calculate_interval,
    grace_exceeded,
    HEAT_THRESHOLD,
    GRACE_THRESHOLD,
)
from watchdom.classifier import (
    StatusClassifier,
    StatusRule,
    STATUS_RULES,
    classify,
    extract_registrar,
    matches,
    activity_code,
)
from watchdom.tld_registry import (
    TLDRegistry,
    BUILTIN_TLDS,
)
from watchdom.validators import (
    DomainValidator,
    validate_interval,
    validate_max_checks,
)
from watchdom.whois_client import (
    WHOISClient,
    WHOISResponse,
)
from watchdom.cancellation import CancellationToken
from watchdom.audit_logger import (
    AuditLogger,
    LogEntry,
)
from watchdom.notifications import (
    NotificationPayload,
    NotificationResult,
    NotificationChannel,
    EmailChannel,
    WebhookChannel,
    NotificationRouter,
    Notifier,
)
from watchdom.prompt import (
    GraceDecision,
    AutoContinuePrompt,
    ConsolePrompt,
)
from watchdom.renderer import (
    StatusRenderer,
    format_timer,
    format_target_distance,
)
from watchdom.scheduler import PollScheduler
from watchdom.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "WatchdomError",
    "ValidationError",
    "ParseError",
    "TransportError",
    "RateLimitError",
    "ConfigError",
    "NotificationError",
    # Enums
    "Phase",
    "LifecycleStatus",
    "ActivityCode",
    "SessionOutcome",
    "Verdict",
    "GraceChoice",
    "NotificationEvent",
    "LogLevel",
    "WHOISErrorCode",
    "ValidationErrorCode",
    # Config
    "TLDConfig",
    "RetryConfig",
    "EmailConfig",
    "WebhookConfig",
    "NotificationConfig",
    "LoggingConfig",
    "WatchConfig",
    "load_config_from_env",
    # Models
    "PollResult",
    "PollSession",
    "CompletionSummary",
    # Time
    "TimeSource",
    "parse_epoch",
    "format_time_display",
    "format_clock",
    "human_duration",
    # Phase engine
    "determine_phase",
    "calculate_interval",
    "grace_exceeded",
    "HEAT_THRESHOLD",
    "GRACE_THRESHOLD",
    # Classifier
    "StatusClassifier",
    "StatusRule",
    "STATUS_RULES",
    "classify",
    "extract_registrar",
    "matches",
    "activity_code",
    # TLD registry
    "TLDRegistry",
    "BUILTIN_TLDS",
    # Validators
    "DomainValidator",
    "validate_interval",
    "validate_max_checks",
    # WHOIS
    "WHOISClient",
    "WHOISResponse",
    # Cancellation
    "CancellationToken",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Notifications
    "NotificationPayload",
    "NotificationResult",
    "NotificationChannel",
    "EmailChannel",
    "WebhookChannel",
    "NotificationRouter",
    "Notifier",
    # Prompt
    "GraceDecision",
    "AutoContinuePrompt",
    "ConsolePrompt",
    # Renderer
    "StatusRenderer",
    "format_timer",
    "format_target_distance",
    # Scheduler
    "PollScheduler",
    # CLI
    "cli_main",
    "create_parser",
]
