from __future__ import annotations

"""
Dependency Graph Layout.

Produces node/link payloads from the workspace dependency graphs and lays
them out with a deterministic force-directed simulation (link springs,
many-body repulsion, centering). The simulation is iterative and CPU bound,
so LayoutWorker runs it in a separate process and only exchanges plain,
picklable dictionaries with it.
"""

import asyncio
import logging
import math
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Any, Dict, List, Optional, Set, Tuple

from repoprompt.core.services.workspace import Workspace

logger = logging.getLogger(__name__)

DEFAULT_TICKS = 300
LINK_DISTANCE = 80.0
CHARGE_STRENGTH = -120.0
VELOCITY_DECAY = 0.6
ALPHA_MIN = 0.001
DISTANCE_MIN2 = 1.0
INITIAL_RADIUS = 10.0
_GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))
_JIGGLE = 1e-6

# -----------------------------------------------------------------------------
# PAYLOAD
# -----------------------------------------------------------------------------

def build_graph_payload(workspace: Workspace, width: int = 960, height: int = 600) -> Dict[str, Any]:
    """
    Collect every file mentioned by any dependency graph.

    Returns:
        Dict[str, Any]: {"nodes": [{id, name}], "links": [{source, target}],
                         "width", "height"}, nodes sorted by id.
    """
    ids: Set[str] = set()
    links: Set[Tuple[str, str]] = set()
    for directory in workspace:
        for source, deps in directory.dependency_graph.items():
            ids.add(source)
            for target in deps:
                ids.add(target)
                links.add((source, target))

    nodes = [{"id": i, "name": i.replace("\\", "/").rsplit("/", 1)[-1]} for i in sorted(ids)]
    return {
        "nodes": nodes,
        "links": [{"source": s, "target": t} for s, t in sorted(links)],
        "width": width,
        "height": height,
    }

# -----------------------------------------------------------------------------
# SIMULATION
# -----------------------------------------------------------------------------

def compute_force_layout(payload: Dict[str, Any], ticks: int = DEFAULT_TICKS) -> Dict[str, Any]:
    """
    Run the force simulation on a payload.

    Pure and deterministic: the same payload always yields the same
    coordinates. Input dictionaries are not modified.

    Args:
        payload: Output of build_graph_payload.
        ticks: Simulation steps.

    Returns:
        Dict[str, Any]: {"nodes": [{..., x, y}], "links": [...]}; links to
                        unknown nodes are dropped.
    """
    raw_nodes: List[Dict[str, Any]] = [dict(n) for n in payload.get("nodes", [])]
    width = float(payload.get("width", 960))
    height = float(payload.get("height", 600))
    n = len(raw_nodes)

    index = {node["id"]: i for i, node in enumerate(raw_nodes)}
    links = [
        (index[link["source"]], index[link["target"]])
        for link in payload.get("links", [])
        if link.get("source") in index and link.get("target") in index
    ]

    xs = [0.0] * n
    ys = [0.0] * n
    vx = [0.0] * n
    vy = [0.0] * n
    for i in range(n):
        radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
        angle = i * _GOLDEN_ANGLE
        xs[i] = radius * math.cos(angle)
        ys[i] = radius * math.sin(angle)

    degree = [0] * n
    for s, t in links:
        degree[s] += 1
        degree[t] += 1
    link_strength = [1.0 / max(1, min(degree[s], degree[t])) for s, t in links]
    link_bias = [degree[s] / (degree[s] + degree[t]) for s, t in links]

    alpha = 1.0
    alpha_decay = 1 - ALPHA_MIN ** (1.0 / DEFAULT_TICKS)

    for _ in range(max(0, ticks)):
        alpha += (0.0 - alpha) * alpha_decay

        # Link springs
        for k, (s, t) in enumerate(links):
            dx = xs[t] + vx[t] - xs[s] - vx[s] or _JIGGLE
            dy = ys[t] + vy[t] - ys[s] - vy[s] or _JIGGLE
            dist = math.sqrt(dx * dx + dy * dy)
            factor = (dist - LINK_DISTANCE) / dist * alpha * link_strength[k]
            dx *= factor
            dy *= factor
            bias = link_bias[k]
            vx[t] -= dx * bias
            vy[t] -= dy * bias
            vx[s] += dx * (1 - bias)
            vy[s] += dy * (1 - bias)

        # Many-body repulsion
        for i in range(n):
            for j in range(n):
                if i == j:
                    continue
                dx = xs[j] - xs[i]
                dy = ys[j] - ys[i]
                l2 = dx * dx + dy * dy
                if l2 == 0:
                    dx = dy = _JIGGLE
                    l2 = 2 * _JIGGLE * _JIGGLE
                if l2 < DISTANCE_MIN2:
                    l2 = math.sqrt(DISTANCE_MIN2 * l2)
                w = CHARGE_STRENGTH * alpha / l2
                vx[i] += dx * w
                vy[i] += dy * w

        # Integrate
        for i in range(n):
            vx[i] *= VELOCITY_DECAY
            vy[i] *= VELOCITY_DECAY
            xs[i] += vx[i]
            ys[i] += vy[i]

        # Centering
        if n:
            shift_x = width / 2 - sum(xs) / n
            shift_y = height / 2 - sum(ys) / n
            for i in range(n):
                xs[i] += shift_x
                ys[i] += shift_y

    for i, node in enumerate(raw_nodes):
        node["x"] = xs[i]
        node["y"] = ys[i]

    return {
        "nodes": raw_nodes,
        "links": [{"source": raw_nodes[s]["id"], "target": raw_nodes[t]["id"]} for s, t in links],
    }

# -----------------------------------------------------------------------------
# WORKER
# -----------------------------------------------------------------------------

class LayoutWorker:
    """
    Runs compute_force_layout off the event loop thread.

    A ProcessPoolExecutor is created on first use unless an executor is
    injected; results come back as new dictionaries only.
    """

    def __init__(self, executor: Optional[Executor] = None) -> None:
        self._executor = executor
        self._owns_executor = executor is None

    async def layout(self, payload: Dict[str, Any], ticks: int = DEFAULT_TICKS) -> Dict[str, Any]:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=1)
        logger.debug(f"Layout requested for {len(payload.get('nodes', []))} node(s).")
        future = self._executor.submit(compute_force_layout, payload, ticks)
        return await asyncio.wrap_future(future)

    def shutdown(self) -> None:
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=True)
            self._executor = None
