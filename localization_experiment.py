"""
Landmark localization experiment.

Simulates a vehicle driving through a random landmark field, runs the
particle filter over the simulated log and reports position / heading error
per trial. Optionally appends every particle to a text log and writes a CSV
summary.

Run: python localization_experiment.py --trials 5 --particles 100
"""

import argparse
import csv
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import numpy as np
from numpy.random import default_rng

from landmark_pf.filters import LandmarkParticleFilter
from landmark_pf.simulation import make_landmark_map, simulate
from landmark_pf.utils import weighted_mean_pose, best_particle, compute_rmse, heading_error


logger = logging.getLogger(__name__)


# =============================================================================
# Simulation Parameters
# =============================================================================

DELTA_T = 0.1
SIGMA_POS = (0.3, 0.3, 0.01)        # GPS-like prior on the initial pose
SIGMA_MOTION = (0.05, 0.05, 0.005)  # process noise used by the filter
SIGMA_LANDMARK = (0.3, 0.3)
SENSOR_RANGE = 50.0


@dataclass
class TrialResult:
    """Results from a single trial."""
    trial: int
    n_particles: int
    rmse_mean: float
    rmse_best: float
    final_heading_error: float
    runtime_s: float


def run_single_trial(
    trial: int,
    n_particles: int,
    T: int,
    n_landmarks: int,
    resample_method: str,
    seed: int,
    particle_log: Optional[str] = None,
) -> TrialResult:
    """Simulate one dataset and filter it."""
    rng = default_rng(seed)
    landmark_map = make_landmark_map(n_landmarks, extent=60.0, rng=rng)
    trajectory = simulate(
        landmark_map,
        T,
        initial_pose=(0.0, 0.0, 0.0),
        delta_t=DELTA_T,
        velocity=5.0,
        yaw_rate=0.15,
        std_landmark=SIGMA_LANDMARK,
        sensor_range=SENSOR_RANGE,
        rng=rng,
    )

    pf = LandmarkParticleFilter(
        n_particles=n_particles,
        resample_method=resample_method,
        seed=seed + 1,
    )

    start = time.perf_counter()
    x0, y0, th0 = trajectory.poses[0]
    pf.init(x0, y0, th0, SIGMA_POS)

    est_mean = np.zeros((T, 3))
    est_best = np.zeros((T, 3))
    for t in range(T):
        velocity, yaw_rate = trajectory.controls[t]
        pf.prediction(DELTA_T, SIGMA_MOTION, velocity, yaw_rate)
        pf.update_weights(SENSOR_RANGE, SIGMA_LANDMARK, trajectory.observations[t], landmark_map)
        est_mean[t] = weighted_mean_pose(pf.particles)
        est_best[t] = best_particle(pf.particles)
        pf.resample()
        if particle_log is not None:
            pf.write(particle_log)
    runtime = time.perf_counter() - start

    _, rmse_mean = compute_rmse(trajectory.poses, est_mean)
    _, rmse_best = compute_rmse(trajectory.poses, est_best)

    return TrialResult(
        trial=trial,
        n_particles=n_particles,
        rmse_mean=rmse_mean,
        rmse_best=rmse_best,
        final_heading_error=heading_error(est_mean[-1], trajectory.poses[-1]),
        runtime_s=runtime,
    )


def print_summary(results: List[TrialResult]):
    """Print per-trial and mean errors."""
    print("\n" + "=" * 70)
    print(f"{'trial':>6s} {'N':>6s} {'RMSE(mean)':>12s} {'RMSE(best)':>12s} "
          f"{'heading err':>12s} {'time [s]':>10s}")
    print("-" * 70)
    for r in results:
        print(f"{r.trial:6d} {r.n_particles:6d} {r.rmse_mean:12.4f} {r.rmse_best:12.4f} "
              f"{r.final_heading_error:12.4f} {r.runtime_s:10.3f}")
    print("-" * 70)
    print(f"{'mean':>6s} {'':>6s} {np.mean([r.rmse_mean for r in results]):12.4f} "
          f"{np.mean([r.rmse_best for r in results]):12.4f} "
          f"{np.mean([r.final_heading_error for r in results]):12.4f} "
          f"{np.mean([r.runtime_s for r in results]):10.3f}")
    print("=" * 70)


def save_results_to_csv(results: List[TrialResult], output_dir: str = ".") -> str:
    """Write per-trial results to a timestamped CSV file."""
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join(output_dir, f"localization_trials_{timestamp}.csv")

    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([
            "trial", "n_particles", "rmse_mean", "rmse_best",
            "final_heading_error", "runtime_s",
        ])
        for r in results:
            writer.writerow([
                r.trial, r.n_particles, f"{r.rmse_mean:.6f}", f"{r.rmse_best:.6f}",
                f"{r.final_heading_error:.6f}", f"{r.runtime_s:.4f}",
            ])
    return path


def main():
    parser = argparse.ArgumentParser(description="Landmark particle filter experiment")
    parser.add_argument("--trials", type=int, default=5)
    parser.add_argument("--particles", type=int, default=100)
    parser.add_argument("--steps", type=int, default=200)
    parser.add_argument("--landmarks", type=int, default=40)
    parser.add_argument("--resample", default="multinomial",
                        choices=["multinomial", "systematic", "stratified", "residual"])
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--particle-log", default=None,
                        help="Append every particle pose to this file after each step")
    parser.add_argument("--output-dir", default=None,
                        help="Write a CSV summary into this directory")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    results = []
    for trial in range(args.trials):
        result = run_single_trial(
            trial=trial,
            n_particles=args.particles,
            T=args.steps,
            n_landmarks=args.landmarks,
            resample_method=args.resample,
            seed=args.seed + 1000 * trial,
            particle_log=args.particle_log,
        )
        logger.info("Trial %d: RMSE %.4f", trial, result.rmse_mean)
        results.append(result)

    print_summary(results)

    if args.output_dir is not None:
        path = save_results_to_csv(results, args.output_dir)
        print(f"Saved results to {path}")


if __name__ == "__main__":
    main()
