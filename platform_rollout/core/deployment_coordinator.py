"""
Deployment Coordinator - serializes deployments across the process.

Provides:
- A single active deployment at any instant
- Per-environment state locks with stale-lock recovery
- A registry of process handles that can be probed and pruned
- Best-effort termination of background IaC processes

All shared state lives behind one reader-writer lock. Every predicate has a
public method that takes the lock and a private ``_..._locked`` variant that
assumes the caller already holds it. Methods that hold the write lock only
ever call the ``_locked`` variants; the lock is not re-entrant.
"""

import asyncio
import itertools
import os
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Sequence

import psutil

from .errors import ContentionError, DeploymentNotActiveError, StateLockedError
from .executor import CommandExecutor
from .logger import get_logger
from ..config import get_config
from ..models.deployment import Deployment, Environment

ProcessProbe = Callable[[int], bool]
ProcessKiller = Callable[[Sequence[str]], int]


class ReadWriteLock:
    """
    Writer-preferring reader-writer lock.

    Readers share the lock; a writer holds it alone. Once a writer is waiting,
    new readers queue behind it. Not re-entrant in either mode.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def pid_is_alive(pid: int) -> bool:
    """Liveness probe: the process exists and is not a zombie."""
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # Exists but belongs to someone else
        return True


def kill_matching_processes(patterns: Sequence[str]) -> int:
    """Terminate processes whose command line contains any pattern. Returns the count."""
    own_pid = os.getpid()
    killed = 0

    for proc in psutil.process_iter(["pid", "cmdline"]):
        if proc.info["pid"] == own_pid:
            continue
        cmdline = " ".join(proc.info.get("cmdline") or [])
        if not cmdline or not any(pattern and pattern in cmdline for pattern in patterns):
            continue
        try:
            proc.terminate()
            killed += 1
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue

    return killed


class DeploymentCoordinator:
    """
    Enforces one in-flight deployment for the whole process.

    Contention and staleness are reported to the caller, never retried here.

    Usage:
        coordinator = DeploymentCoordinator()
        deployment = coordinator.start_deployment("production")
        try:
            ...
        finally:
            coordinator.complete_deployment(deployment)
    """

    def __init__(
        self,
        default_timeout: timedelta = None,
        stale_lock_age: timedelta = None,
        process_probe: ProcessProbe = None,
        process_killer: ProcessKiller = None,
        background_process_patterns: Sequence[str] = None,
        executor: CommandExecutor = None,
    ):
        settings = get_config().rollout
        if default_timeout is None:
            default_timeout = timedelta(minutes=settings.deployment_timeout_minutes)
        if stale_lock_age is None:
            stale_lock_age = timedelta(minutes=settings.stale_lock_minutes)
        self.default_timeout = default_timeout
        self.stale_lock_age = stale_lock_age
        self.background_process_patterns = list(
            background_process_patterns or settings.background_process_patterns
        )
        self.state_backend_check_command = settings.state_backend_check_command

        self._probe = process_probe or pid_is_alive
        self._killer = process_killer or kill_matching_processes
        self._executor = executor
        self.logger = get_logger("DeploymentCoordinator")

        self._lock = ReadWriteLock()
        self._active_deployment: Optional[Deployment] = None
        # Environment -> time.monotonic() at which the lock was taken
        self._state_locks: Dict[Environment, float] = {}
        self._process_registry: Dict[str, int] = {}
        self._sequence = itertools.count(1)

    # Deployment lifecycle

    def start_deployment(
        self,
        environment: "str | Environment",
        timeout: timedelta = None,
    ) -> Deployment:
        """
        Start a deployment if none is active.

        An expired active deployment is cleared in the same critical section
        and the call proceeds.

        Raises:
            ContentionError: Another non-expired deployment is active.
            StateLockedError: The environment's state lock is held.
        """
        environment = Environment.parse(environment)
        if timeout is None:
            timeout = self.default_timeout

        with self._lock.write_locked():
            active = self._active_deployment
            if active is not None:
                if not self._is_deployment_timed_out_locked(active):
                    raise ContentionError(active.environment.value)
                self.logger.warning(
                    "Clearing timed out deployment",
                    deployment_id=active.id,
                    environment=active.environment.value,
                )
                self._release_locked(active)

            if self._is_state_locked_locked(environment):
                raise StateLockedError(environment.value)

            started = time.monotonic()
            pid = os.getpid()
            deployment = Deployment(
                id=f"deploy-{time.time_ns()}",
                environment=environment,
                started_at=datetime.now(),
                timeout=timeout,
                process_id=f"proc-{pid}-{next(self._sequence)}",
                pid=pid,
                started_monotonic=started,
            )

            self._state_locks[environment] = started
            self._process_registry[deployment.process_id] = pid
            self._active_deployment = deployment

        self.logger.info(
            "Deployment started",
            deployment_id=deployment.id,
            environment=environment.value,
            timeout_seconds=timeout.total_seconds(),
        )
        return deployment

    def start_deployment_with_recovery(
        self,
        environment: "str | Environment",
        timeout: timedelta = None,
    ) -> Deployment:
        """
        Clear the environment's state lock if it is older than the stale-lock
        age, then start a deployment normally.
        """
        environment = Environment.parse(environment)

        with self._lock.write_locked():
            locked_at = self._state_locks.get(environment)
            if locked_at is not None and time.monotonic() - locked_at > self.stale_lock_age.total_seconds():
                del self._state_locks[environment]
                self.logger.warning(
                    "Removed stale state lock",
                    environment=environment.value,
                    age_seconds=round(time.monotonic() - locked_at, 1),
                )

        return self.start_deployment(environment, timeout)

    def complete_deployment(self, deployment: Deployment) -> None:
        """
        Release a deployment's state lock and process handle.

        Raises:
            DeploymentNotActiveError: `deployment` is not the tracked instance.
        """
        with self._lock.write_locked():
            if self._active_deployment is not deployment:
                raise DeploymentNotActiveError(getattr(deployment, "id", None))
            self._release_locked(deployment)

        self.logger.info("Deployment completed", deployment_id=deployment.id)

    def _release_locked(self, deployment: Deployment) -> None:
        """Caller must hold the write lock."""
        self._state_locks.pop(deployment.environment, None)
        self._process_registry.pop(deployment.process_id, None)
        if self._active_deployment is deployment:
            self._active_deployment = None

    # Predicates

    def is_deployment_timed_out(self, deployment: Deployment) -> bool:
        # Deployments are immutable, no lock needed
        return self._is_deployment_timed_out_locked(deployment)

    def _is_deployment_timed_out_locked(self, deployment: Deployment) -> bool:
        return deployment.is_expired()

    def get_process_id(self, deployment: Deployment) -> str:
        return deployment.process_id

    def is_process_running(self, process_id: str) -> bool:
        with self._lock.read_locked():
            return self._is_process_running_locked(process_id)

    def _is_process_running_locked(self, process_id: str) -> bool:
        """Caller must hold the lock (read or write)."""
        pid = self._process_registry.get(process_id)
        if pid is None:
            return False
        return self._probe_locked(pid)

    def _probe_locked(self, pid: int) -> bool:
        try:
            return bool(self._probe(pid))
        except Exception as e:
            self.logger.warning("Process probe failed", pid=pid, error=str(e))
            return False

    def is_state_locked(self, environment: "str | Environment") -> bool:
        environment = Environment.parse(environment)
        with self._lock.read_locked():
            return self._is_state_locked_locked(environment)

    def _is_state_locked_locked(self, environment: Environment) -> bool:
        """Caller must hold the lock (read or write)."""
        return environment in self._state_locks

    def get_active_process_count(self) -> int:
        with self._lock.read_locked():
            return len(self._process_registry)

    @property
    def active_deployment(self) -> Optional[Deployment]:
        with self._lock.read_locked():
            return self._active_deployment

    # Recovery

    def cleanup_orphaned_processes(self) -> List[str]:
        """
        Prune dead process handles, then clear the active deployment if it has
        expired or its process is gone. One write-locked critical section.

        Returns:
            Process IDs removed from the registry.
        """
        pruned: List[str] = []
        cleared: Optional[Deployment] = None

        with self._lock.write_locked():
            for process_id, pid in list(self._process_registry.items()):
                if not self._probe_locked(pid):
                    del self._process_registry[process_id]
                    pruned.append(process_id)

            active = self._active_deployment
            if active is not None and (
                self._is_deployment_timed_out_locked(active)
                or not self._is_process_running_locked(active.process_id)
            ):
                self._release_locked(active)
                cleared = active

        if pruned:
            self.logger.info("Pruned orphaned processes", process_ids=pruned)
        if cleared is not None:
            self.logger.warning(
                "Cleared orphaned deployment",
                deployment_id=cleared.id,
                environment=cleared.environment.value,
            )
        return pruned

    def kill_background_processes(self) -> int:
        """
        Terminate background IaC processes, then reset all coordinator state.

        The kill runs before the lock is taken; it touches no shared state.

        Returns:
            Number of processes signalled.
        """
        killed = 0
        try:
            killed = self._killer(self.background_process_patterns)
        except Exception as e:
            self.logger.warning("Background process cleanup failed", error=str(e))

        with self._lock.write_locked():
            self._process_registry = {}
            self._active_deployment = None
            self._state_locks = {}

        self.logger.info("Coordinator state reset", killed=killed)
        return killed

    def create_stale_lock(
        self,
        environment: "str | Environment",
        age: timedelta = timedelta(minutes=10),
    ) -> None:
        """Record a state lock that was taken `age` ago."""
        environment = Environment.parse(environment)
        with self._lock.write_locked():
            self._state_locks[environment] = time.monotonic() - age.total_seconds()

    # State backend

    async def get_state_backend_lock_status(self) -> bool:
        """True if the IaC state backend appears locked (its check command fails)."""
        executor = self._executor or CommandExecutor()
        result = await executor.run(self.state_backend_check_command, timeout=60)
        if not result.success:
            self.logger.info("State backend check failed", stderr=result.stderr.strip())
        return not result.success

    async def wait_for_state_backend_lock(
        self,
        timeout: timedelta = timedelta(minutes=5),
        poll_interval: float = 5.0,
    ) -> None:
        """
        Poll until the state backend is unlocked.

        Raises:
            TimeoutError: The backend stayed locked for `timeout`.
        """
        deadline = time.monotonic() + timeout.total_seconds()
        while True:
            if not await self.get_state_backend_lock_status():
                return
            if time.monotonic() >= deadline:
                raise TimeoutError("timeout waiting for state backend lock")
            await asyncio.sleep(poll_interval)
