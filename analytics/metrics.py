"""
Lane-Sketch – Simulation Metrics Collector
Arrivals, collisions, deliveries, lane changes and speed history.
"""

import numpy as np

from simulation.agent import AgentStatus, Carrying, PayloadKind


class MetricsCollector:
    """Collects and summarises what happened to agents over a run."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.outcomes = {s: 0 for s in AgentStatus if s != AgentStatus.CONTINUING}
        self.deliveries = {kind: 0 for kind in PayloadKind}
        self.lane_changes = 0
        self.speed_history: list[float] = []
        self.active_history: list[int] = []
        self._frame = 0

    # ─── per-tick update ──────────────────
    def record_outcome(self, agent, status: AgentStatus):
        """Count an agent that left the simulation with *status*."""
        self.outcomes[status] += 1
        self.lane_changes += agent.lane_changes
        if status == AgentStatus.REACHED_END and agent.capabilities.delivers:
            if isinstance(agent.behavior, Carrying):
                self.deliveries[agent.behavior.payload] += 1

    def record_tick(self, agents: list) -> float:
        """Store this tick's mean speed and active count; returns the mean speed."""
        self._frame += 1
        speeds = np.array([a.speed for a in agents], dtype=np.float64)
        mean_speed = float(speeds.mean()) if speeds.size else 0.0
        self.speed_history.append(mean_speed)
        self.active_history.append(len(agents))
        return mean_speed

    # ─── computed stats ───────────────────
    @property
    def ticks(self) -> int:
        return self._frame

    @property
    def arrivals(self) -> int:
        return self.outcomes[AgentStatus.REACHED_END]

    @property
    def throughput(self) -> float:
        """Arrivals per 100 ticks."""
        if self._frame == 0:
            return 0.0
        return self.arrivals / self._frame * 100

    @property
    def average_speed(self) -> float:
        return float(np.mean(self.speed_history)) if self.speed_history else 0.0

    @property
    def peak_active(self) -> int:
        return max(self.active_history) if self.active_history else 0

    @property
    def survival_rate(self) -> float:
        """Fraction of finished agents that reached the end of their lane."""
        finished = sum(self.outcomes.values())
        return self.arrivals / finished if finished else 0.0

    def summary(self) -> dict:
        return {
            "ticks": self._frame,
            "arrived": self.arrivals,
            "collided": self.outcomes[AgentStatus.COLLIDED],
            "detonated": self.outcomes[AgentStatus.DETONATED],
            "destroyed": self.outcomes[AgentStatus.DESTROYED],
            "candy_delivered": self.deliveries[PayloadKind.CANDY],
            "poison_delivered": self.deliveries[PayloadKind.POISON],
            "lane_changes": self.lane_changes,
            "average_speed": self.average_speed,
            "throughput": self.throughput,
        }

    def generate_report(self) -> str:
        s = self.summary()
        lines = [
            "═" * 50,
            " Lane-Sketch — Simulation Report",
            "═" * 50,
            f"  Ticks simulated    : {s['ticks']}",
            f"  Arrived            : {s['arrived']}",
            f"  Collided           : {s['collided']}",
            f"  Detonated          : {s['detonated']}",
            f"  Destroyed          : {s['destroyed']}",
            f"  Candy delivered    : {s['candy_delivered']}",
            f"  Poison delivered   : {s['poison_delivered']}",
            f"  Lane changes       : {s['lane_changes']}",
            f"  Throughput         : {s['throughput']:.1f} agents / 100 ticks",
            f"  Avg speed          : {s['average_speed']:.2f} units / tick",
            f"  Survival rate      : {self.survival_rate:.1%}",
            "═" * 50,
        ]
        return "\n".join(lines)
