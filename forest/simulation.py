"""
Forest simulation kernel.

Main simulation class that owns the forest, census, clock, and random
streams, drives batches of replacements, and runs the start/pause/reset
state machine. It is the explicit context object handed to the replacement
rules; nothing lives in module-level state.
"""

import numpy as np
import time
from typing import List, Optional

from .forest import Forest
from .timeline import Timeline
from .rules import RULES
from .rng import make_rng
from .loader import ConfigError, validate_config, validate_resource_split
from .data_types import (
    ForestConfig,
    SimulationState,
    BatchStatus,
    BatchResult,
    Replacement,
)
from .constants import (
    BATCH_TIME_WINDOW,
    IMMIGRATION_INTERVALS,
    VARIANT_COEXIST,
    VARIANT_SOCIALDX,
)


class SimulationStateError(Exception):
    """Raised on an illegal start/pause/resume/run transition"""
    pass


class ForestSimulation:
    """
    Main simulation class for forest tree-replacement models.

    Manages forest lifecycle, the batch driver, and the run state machine.

    States:
        idle    -> running   start()
        running -> paused    pause(), or step ceiling reached
        paused  -> running   resume()
        running -> done      a species went extinct (competition only)
        any     -> idle      reset()
    """

    def __init__(
        self,
        config: ForestConfig,
        rng=None,
        forest: Optional[Forest] = None
    ):
        """
        Initialize simulation from configuration.

        Args:
            config: Validated (or validatable) scenario configuration
            rng: Optional generator for the dynamics stream (tests pass a scripted one)
            forest: Optional prebuilt forest replacing the random initial layout
        """
        validate_config(config)

        self.config: ForestConfig = config
        self.variant: str = config.variant
        self.rule = RULES[config.variant]

        self._reset_parameters()

        # Performance metrics
        self._batch_times: List[float] = []
        self._batch_time_sum: float = 0.0
        self._batch_time_window: int = BATCH_TIME_WINDOW  # Rolling average window

        self._build(rng=rng, forest=forest)

        print(f"[OK] Forest initialized: {self.forest.N} trees, "
              f"{len(self.forest.species_defs)} species, variant={self.variant}, "
              f"seed={config.seed}")

    def _reset_parameters(self):
        """Adjustable parameters (read at the next step) back to their configured values."""
        self.immigration_interval: int = self.config.immigration_interval
        self.capacities = (
            float(self.config.resource_split),
            float(self.config.resource_total - self.config.resource_split)
        )
        self.poaching_coef: float = self.config.poaching_coef

    def _build(self, rng=None, forest: Optional[Forest] = None):
        """Create forest, census, clock, timeline, and random streams."""
        self.step_count: int = 0
        self.state: SimulationState = SimulationState.IDLE
        self._next_ceiling: int = self.config.max_steps

        self.rng = rng if rng is not None else make_rng(self.config.seed, "dynamics")

        if forest is None:
            forest = Forest(
                self.config.trees_per_row,
                self.config.species,
                make_rng(self.config.seed, "layout"),
                canvas_size=self.config.canvas_size,
                neighborhoods=(self.variant == VARIANT_SOCIALDX)
            )
        elif self.variant == VARIANT_SOCIALDX:
            forest.build_neighborhoods()
        self.forest: Forest = forest

        self.timeline: Optional[Timeline] = None
        if self.config.timeline_interval is not None:
            self.timeline = Timeline(self.forest.names, self.config.timeline_interval)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def step(self) -> Replacement:
        """
        Perform one accepted replacement and advance the clock by one.

        Low-level: does not consult the state machine.
        """
        event = self.rule(self)
        if self.timeline is not None and self.timeline.due(self.step_count):
            self.timeline.sample(self.step_count, self.forest.census)
        self.step_count += 1
        return event

    def run_batch(self) -> BatchResult:
        """
        Run one batch of replacements, then check the stop conditions.

        Called repeatedly by the external scheduler while the state is
        running. The batch always runs to completion; a pause requested
        meanwhile takes effect before the next call.

        Returns:
            BatchResult; status CEILING means the run paused itself,
            EXTINCT means it is done for good

        Raises:
            SimulationStateError: State is not running
        """
        if self.state != SimulationState.RUNNING:
            raise SimulationStateError(f"run_batch() requires state running, not {self.state.value}")

        start_time = time.perf_counter()
        for _ in range(self.config.batch_size):
            self.step()
        self._record_batch_time(time.perf_counter() - start_time)

        status = self._check_stop()
        return BatchResult(
            steps=self.config.batch_size,
            step_count=self.step_count,
            status=status,
            state=self.state,
            census=self.forest.census_dict()
        )

    def _check_stop(self) -> BatchStatus:
        """
        Evaluate stop conditions after a batch.

        Extinction takes precedence over the step ceiling when both occur in
        the same batch, because extinction is irreversible.
        """
        if self.variant == VARIANT_COEXIST and np.any(self.forest.census == 0):
            self.state = SimulationState.DONE
            survivor = self.forest.names[int(np.argmax(self.forest.census))]
            print(f"[OK] Step {self.step_count}: {survivor} holds the whole forest, run done")
            return BatchStatus.EXTINCT

        if self.step_count >= self._next_ceiling:
            while self._next_ceiling <= self.step_count:
                self._next_ceiling += self.config.max_steps
            self.state = SimulationState.PAUSED
            print(f"[OK] Step {self.step_count}: step ceiling reached, paused")
            return BatchStatus.CEILING

        return BatchStatus.CONTINUE

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def start(self):
        """idle -> running"""
        if self.state != SimulationState.IDLE:
            raise SimulationStateError(f"Cannot start from state {self.state.value}")
        self.state = SimulationState.RUNNING

    def pause(self):
        """running -> paused"""
        if self.state != SimulationState.RUNNING:
            raise SimulationStateError(f"Cannot pause from state {self.state.value}")
        self.state = SimulationState.PAUSED

    def resume(self):
        """paused -> running"""
        if self.state != SimulationState.PAUSED:
            raise SimulationStateError(f"Cannot resume from state {self.state.value}")
        self.state = SimulationState.RUNNING

    def toggle(self) -> SimulationState:
        """
        Start/stop button: idle or paused -> running, running -> paused.

        A done run stays done.
        """
        if self.state == SimulationState.RUNNING:
            self.pause()
        elif self.state == SimulationState.IDLE:
            self.start()
        elif self.state == SimulationState.PAUSED:
            self.resume()
        return self.state

    def reset(self):
        """
        Discard forest, census, clock, and timeline; rebuild and go idle.

        Runtime parameter changes (immigration interval, resource split) are
        dropped too; the new run starts from the configured values.
        """
        self._batch_times.clear()
        self._batch_time_sum = 0.0
        self._reset_parameters()
        self._build()

    # ------------------------------------------------------------------
    # Parameter inputs
    # ------------------------------------------------------------------

    def set_immigration_interval(self, interval: int):
        """Choose a new immigration interval from the fixed menu."""
        if interval not in IMMIGRATION_INTERVALS:
            raise ConfigError(f"Immigration interval {interval} not in {IMMIGRATION_INTERVALS}")
        self.immigration_interval = interval

    def set_resource_split(self, split: int):
        """Split the resource total as split : total - split."""
        total = self.config.resource_total
        validate_resource_split(split, total, self.poaching_coef, self.forest.N)
        self.capacities = (float(split), float(total - split))

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def get_batch_stats(self) -> dict:
        """
        Get current batch timing statistics.

        Returns:
            Dict with step_count, avg_batch_time_ms, last_batch_time_ms
        """
        if not self._batch_times:
            return {
                'step_count': self.step_count,
                'avg_batch_time_ms': 0.0,
                'last_batch_time_ms': 0.0
            }

        avg_time = self._batch_time_sum / len(self._batch_times)
        last_time = self._batch_times[-1]

        return {
            'step_count': self.step_count,
            'avg_batch_time_ms': avg_time * 1000.0,
            'last_batch_time_ms': last_time * 1000.0
        }

    def _record_batch_time(self, elapsed: float):
        """
        Record batch timing for rolling average.

        Args:
            elapsed: Batch time in seconds
        """
        self._batch_times.append(elapsed)
        self._batch_time_sum += elapsed

        # Maintain rolling window
        if len(self._batch_times) > self._batch_time_window:
            removed = self._batch_times.pop(0)
            self._batch_time_sum -= removed

    def get_snapshot(self) -> dict:
        """
        Get complete simulation state snapshot.

        Returns:
            Dict with step_count, state, census, trees, timeline, timing
        """
        return {
            'variant': self.variant,
            'step_count': self.step_count,
            'state': self.state.value,
            'census': self.forest.census_dict(),
            'vacant': self.forest.vacant_count(),
            'trees': [t.to_dict() for t in self.forest.trees()],
            'timeline': self.timeline.to_dict() if self.timeline is not None else None,
            'timing': self.get_batch_stats()
        }

    def print_batch_summary(self):
        """Print batch summary to console (lightweight monitoring)"""
        stats = self.get_batch_stats()
        print(f"Step {stats['step_count']:8d} | "
              f"Avg: {stats['avg_batch_time_ms']:6.3f} ms | "
              f"Last: {stats['last_batch_time_ms']:6.3f} ms | "
              f"Species: {self.forest.species_present()}/{len(self.forest.species_defs)} | "
              f"Vacant: {self.forest.vacant_count()}")
