"""
Headless forest runner.

Loads a scenario from the data pack, plays the scheduler's part (start,
call run_batch until the run pauses itself or is done), and prints a batch
summary every few batches.

Usage:
    python scripts/run_forest.py socialdx
    python scripts/run_forest.py coexist --batches 5000 --every 500
    python scripts/run_forest.py immigration --seed 7 --interval 1000
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from forest.loader import load_palettes, load_scenario
from forest.simulation import ForestSimulation
from forest.data_types import BatchStatus
from forest.constants import TIMELINE_INTERVAL_DEFAULT, VARIANT_SOCIALDX

REPO_ROOT = Path(__file__).parent.parent
DATA_ROOT = REPO_ROOT / "data"
SCHEMA_DIR = REPO_ROOT / "schemas"


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a forest scenario headless")
    parser.add_argument("scenario", help="Scenario name under data/scenarios (or a YAML path)")
    parser.add_argument("--batches", type=int, default=2000, help="Batches to run at most")
    parser.add_argument("--every", type=int, default=250, help="Print a summary every N batches")
    parser.add_argument("--seed", type=int, default=None, help="Override the scenario seed")
    parser.add_argument("--interval", type=int, default=None, help="Immigration interval (menu value)")
    parser.add_argument("--split", type=int, default=None, help="Resource split for coexist")
    parser.add_argument("--timeline", action="store_true", help="Record census every 1000 steps")
    args = parser.parse_args()

    scenario_path = Path(args.scenario)
    if not scenario_path.suffix:
        scenario_path = DATA_ROOT / "scenarios" / f"{args.scenario}.yaml"

    palettes = load_palettes(DATA_ROOT / "palettes" / "trees.yaml", SCHEMA_DIR)
    config = load_scenario(scenario_path, palettes, SCHEMA_DIR)
    if args.seed is not None:
        config.seed = args.seed
    if args.timeline and config.timeline_interval is None:
        config.timeline_interval = TIMELINE_INTERVAL_DEFAULT

    sim = ForestSimulation(config)
    if args.interval is not None:
        sim.set_immigration_interval(args.interval)
    if args.split is not None:
        sim.set_resource_split(args.split)

    sim.start()
    for i in range(1, args.batches + 1):
        result = sim.run_batch()
        if i % args.every == 0:
            sim.print_batch_summary()
        if result.status != BatchStatus.CONTINUE:
            break
    else:
        sim.pause()

    sim.print_batch_summary()
    print(f"State: {sim.state.value}")
    for name, count in sim.forest.census_dict().items():
        print(f"  {name:10s} {count:5d}")
    if sim.variant == VARIANT_SOCIALDX:
        print(f"  conflicts  {sim.forest.count_conflicts():5d}")
    if sim.timeline is not None:
        print(f"Timeline: {len(sim.timeline)} samples, "
              f"species present at end {sim.timeline.species_present[-1] if len(sim.timeline) else 0}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
