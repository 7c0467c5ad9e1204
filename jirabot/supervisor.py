"""
Process supervisor.

Validates the configuration, builds the shared context and launches the
HTTP listener, the background tasks and the bot loop. Every failure is
fatal: the process logs one critical record and exits with status 1.

The loop-wide exception handler installed here is the only place task
failures are turned into a fatal exit. Context construction has no local
error handling and relies on it too.
"""

import asyncio
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence

from . import config as bot_config
from .background_tasks import start_background_tasks
from .bot import start_bot
from .config import CONFIG_ENV_VAR, BotConfig
from .context import Context, init
from .http_server import start_http_server
from .utils.logging import flush_handlers, log_fatal, logger
from .utils.task_registry import TaskRegistry, get_task_registry


INVALID_CONFIG_MSG = "invalid bot-config"
UNHANDLED_FAILURE_MSG = "unhandled task failure"
FATAL_EXIT_CODE = 1


class SupervisorState(Enum):
    """Lifecycle of the process as seen by the supervisor."""
    STARTING = "starting"
    VALIDATING_CONFIG = "validating_config"
    INITIALIZING_CONTEXT = "initializing_context"
    RUNNING = "running"
    FATAL_EXIT = "fatal_exit"


@dataclass
class FatalEvent:
    """Why the process is about to terminate."""
    msg: str
    reason: Optional[str] = None
    operation: Optional[str] = None


Loader = Callable[[str], Optional[BotConfig]]
Initializer = Callable[[BotConfig], Awaitable[Context]]
Launcher = Callable[[Context], None]

DEFAULT_LAUNCHERS: Sequence[Launcher] = (start_http_server, start_background_tasks, start_bot)


def describe_failure(exc: BaseException) -> str:
    """String form of an exception, falling back to repr when str is empty."""
    return str(exc) or repr(exc)


def describe_operation(event: Dict[str, Any]) -> Optional[str]:
    """Format the task, future or callback an exception handler event is about."""
    for key in ("task", "future", "handle"):
        operation = event.get(key)
        if operation is not None:
            return repr(operation)
    return None


def terminate(status: int) -> None:
    """Flush logs and exit the process immediately with the given status.

    Works from a task finalizer, where a SystemExit would be swallowed.
    """
    flush_handlers()
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(status)


class Supervisor:
    """Drives startup and owns the crash policy."""

    def __init__(
        self,
        loader: Loader = bot_config.parse,
        initializer: Initializer = init,
        launchers: Sequence[Launcher] = DEFAULT_LAUNCHERS,
        environ: Optional[Mapping[str, str]] = None,
        exit_func: Optional[Callable[[int], Any]] = None,
        registry: Optional[TaskRegistry] = None
    ):
        """Initialize the supervisor.

        Args:
            loader: Turns the raw config string into a BotConfig, or None.
            initializer: Builds the shared context from a BotConfig.
            launchers: Subsystem entry points, each called once with the context.
            environ: Environment to read JIRABOT_CONFIG from. Defaults to os.environ.
            exit_func: Called with the exit status on fatal paths. Defaults
                to terminate().
            registry: Task registry used to track the startup task.
        """
        self._loader = loader
        self._initializer = initializer
        self._launchers = tuple(launchers)
        self._environ = os.environ if environ is None else environ
        self._exit = exit_func or terminate
        self._registry = registry or get_task_registry()

        self.state = SupervisorState.STARTING
        self._raw_config: Optional[str] = None
        self._context: Optional[Context] = None
        self._safety_net_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def context(self) -> Optional[Context]:
        return self._context

    def read_config_source(self) -> str:
        """Read JIRABOT_CONFIG once; later calls return the same string."""
        if self._raw_config is None:
            self._raw_config = self._environ.get(CONFIG_ENV_VAR, "")
        return self._raw_config

    def validate_config(self) -> Optional[BotConfig]:
        """Run the loader; exits the process on an invalid configuration."""
        self.state = SupervisorState.VALIDATING_CONFIG
        config = self._loader(self.read_config_source())
        if config is None:
            self.fatal(FatalEvent(msg=INVALID_CONFIG_MSG))
            return None
        logger.info("Configuration is valid")
        return config

    async def initialize_context(self, config: BotConfig) -> Context:
        """Build the shared context. Failures propagate to the safety net."""
        if self._context is not None:
            raise RuntimeError("shared context is already initialized")
        self.state = SupervisorState.INITIALIZING_CONTEXT
        logger.info("Initializing shared context...")
        context = await self._initializer(config)
        self._context = context
        return context

    def launch_subsystems(self, context: Context) -> None:
        """Start every subsystem with the same context. Nothing is awaited."""
        for launcher in self._launchers:
            logger.info(f"Launching {getattr(launcher, '__name__', launcher)}")
            launcher(context)
        self.state = SupervisorState.RUNNING
        logger.info("All subsystems launched")

    async def startup(self, config: BotConfig) -> None:
        context = await self.initialize_context(config)
        self.launch_subsystems(context)

    def install_safety_net(self, loop: asyncio.AbstractEventLoop) -> None:
        """Register the loop-wide handler for otherwise unhandled failures."""
        if self._safety_net_loop is not None:
            raise RuntimeError("safety net is already installed")
        loop.set_exception_handler(self.handle_unhandled_failure)
        self._safety_net_loop = loop

    def handle_unhandled_failure(
        self,
        loop: asyncio.AbstractEventLoop,
        event: Dict[str, Any]
    ) -> None:
        """Exception handler: any exception reaching it ends the process.

        Events that carry no exception are asyncio diagnostics (unclosed
        transports and the like); those go to the default handler.
        """
        exc = event.get("exception")
        if exc is None:
            loop.default_exception_handler(event)
            return

        self.fatal(FatalEvent(
            msg=UNHANDLED_FAILURE_MSG,
            reason=describe_failure(exc),
            operation=describe_operation(event),
        ))

    def fatal(self, event: FatalEvent) -> None:
        """Log the fatal event and terminate."""
        self.state = SupervisorState.FATAL_EXIT
        log_fatal(event.msg, reason=event.reason, operation=event.operation)
        self._exit(FATAL_EXIT_CODE)

    def run(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Run the process: validate, build the context, launch, serve forever."""
        if loop is None:
            loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        # Must be in place before anything is scheduled on the loop
        self.install_safety_net(loop)

        config = self.validate_config()
        if config is None:
            return

        self._registry.spawn(self.startup(config), name="startup", loop=loop)
        loop.run_forever()


def main() -> None:
    """Console entry point."""
    Supervisor().run()
