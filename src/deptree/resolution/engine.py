"""Concurrent recursive dependency tree resolution.

Every dependency edge becomes its own unit of work on a bounded thread
pool. A ``TaskGroup`` scoped to one top-level request counts the units in
flight so ``resolve`` can return once the whole tree is terminal.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, FrozenSet, Optional, Tuple

from deptree.constants import Constants
from deptree.common.logging_utils import extra_context, is_debug_enabled, Timer
from deptree.exceptions import DeptreeError
from deptree.versioning.models import PackageNode, ResolutionStatus
from deptree.versioning.resolver import parse_constraint, resolve_constraint

logger = logging.getLogger(__name__)

AncestorKeys = FrozenSet[Tuple[str, str]]


class TaskGroup:
    """Spawn/join-all barrier for the units of work of a single request.

    The counter is incremented before a unit is submitted and decremented
    when it finishes, whether it succeeded or not.
    """

    def __init__(self, executor: Executor):
        self._executor = executor
        self._cond = threading.Condition()
        self._pending = 0

    @property
    def pending(self) -> int:
        with self._cond:
            return self._pending

    def spawn(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._cond:
            self._pending += 1
        try:
            self._executor.submit(self._run, fn, *args)
        except BaseException:
            self._done()
            raise

    def join(self) -> None:
        """Block until every spawned unit, including ones spawned by units, has finished."""
        with self._cond:
            self._cond.wait_for(lambda: self._pending == 0)

    def _run(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:  # pylint: disable=broad-exception-caught
            # The executor would otherwise park this on a future nobody reads.
            logger.exception("Unhandled error in resolution task")
        finally:
            self._done()

    def _done(self) -> None:
        with self._cond:
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()


class ResolutionEngine:
    """Builds a dependency tree for a root package against a registry client.

    Args:
        client: Object exposing ``get_metadata(name)`` and
            ``get_manifest(name, version)``, e.g. NpmRegistryClient.
        max_workers: Size of the worker pool shared by all requests.
        executor: Optional executor to use instead of an owned pool.
    """

    def __init__(
        self,
        client: Any,
        max_workers: int = Constants.MAX_WORKERS,
        executor: Optional[Executor] = None,
    ):
        self._client = client
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="deptree-resolve"
        )

    def __enter__(self) -> "ResolutionEngine":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the owned worker pool."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def resolve(self, name: str, constraint: str = Constants.DEFAULT_CONSTRAINT) -> PackageNode:
        """Resolve ``name`` at ``constraint`` and every transitive dependency.

        Never raises for a failure inside the tree: failing nodes are left
        unresolved with ``status`` and ``error`` set.

        Raises:
            ValueError: if ``name`` is empty.
        """
        if not name or not name.strip():
            raise ValueError("Package name must be non-empty")

        root = PackageNode(name=name.strip(), constraint=constraint or "")
        group = TaskGroup(self._executor)
        with Timer() as timer:
            group.spawn(self._resolve_node, root, frozenset(), group)
            group.join()

        unresolved = root.unresolved()
        logger.info(
            "Resolved %s@%s -> %s (%d nodes, %d unresolved) in %sms",
            root.name,
            root.constraint,
            root.version or "<unresolved>",
            sum(1 for _ in root.walk()),
            len(unresolved),
            timer.duration_ms(),
        )
        return root

    def _resolve_node(self, node: PackageNode, ancestors: AncestorKeys, group: TaskGroup) -> None:
        """Resolve one node, then fan out its dependencies without waiting on them."""
        if is_debug_enabled(logger):
            logger.debug(
                "Resolving node",
                extra=extra_context(
                    event="function_entry",
                    component="engine",
                    action="resolve_node",
                    package=node.name,
                    version=node.constraint,
                ),
            )
        try:
            # Must parse before any fetch is attempted.
            parse_constraint(node.constraint)
            metadata = self._client.get_metadata(node.name)
            node.version = str(resolve_constraint(node.constraint, metadata.versions))
            manifest = self._client.get_manifest(node.name, node.version)
        except DeptreeError as exc:
            logger.warning("Could not resolve %s@%s: %s", node.name, node.constraint, exc)
            node.mark_failed(str(exc))
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.exception("Unexpected error resolving %s@%s", node.name, node.constraint)
            node.mark_failed(f"Internal error: {exc}")
            return

        path = ancestors | {node.key}
        node.dependencies = {
            dep_name: PackageNode(name=dep_name, constraint=dep_constraint)
            for dep_name, dep_constraint in sorted(manifest.dependencies.items())
        }
        node.status = ResolutionStatus.RESOLVED

        for child in node.dependencies.values():
            if child.key in path:
                logger.info("Dependency cycle at %s@%s under %s", child.name, child.constraint, node.name)
                child.mark_failed(
                    f"Dependency cycle: {child.name}@{child.constraint} is already being resolved",
                    ResolutionStatus.CYCLE,
                )
                continue
            group.spawn(self._resolve_node, child, path, group)
