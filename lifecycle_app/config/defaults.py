"""Default configuration parameters for the account lifecycle gate."""

from dataclasses import dataclass

from ..state.models import Destination


@dataclass(frozen=True)
class TimerParams:
    """Hold countdown parameters."""
    tick_interval_seconds: float = 1.0               # Fixed countdown tick


@dataclass(frozen=True)
class ActivationParams:
    """Self-service activation parameters."""
    settle_delay_seconds: float = 0.5                # Wait for in-flight pushes before redirecting
    audit_reason_template: str = "Account activated by user on {timestamp}"


@dataclass(frozen=True)
class RouteParams:
    """Navigation paths for each destination screen."""
    main_app: str = "/"
    pending: str = "/approval-pending"
    hold: str = "/hold"
    suspended: str = "/suspended"
    rejected: str = "/rejected"
    login: str = "/login"
    profile_creation: str = "/profile-completion"

    def path_for(self, destination: Destination) -> str:
        return getattr(self, destination.value)


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete configuration."""
    timer: TimerParams
    activation: ActivationParams
    routes: RouteParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        timer=TimerParams(),
        activation=ActivationParams(),
        routes=RouteParams(),
        logging=LoggingParams(),
    )
