"""
Track Report Script

Prints a summary, splits and personal-best candidates for a recorded track
file (CSV or JSON), optionally merging the results into a personal-best
registry file and comparing the track against a ghost reference track.

Usage:
    python analyze_track.py --data-file "Track Data/morning_run.csv"
    python analyze_track.py --data-file run.json --registry pbs.json --update-registry
"""

import argparse
import sys
from pathlib import Path

from banshee import constants
from banshee import data_loading
from banshee import export
from banshee import ghost
from banshee import pace
from banshee import personal_best
from banshee import session
from banshee.errors import TrackDecodeError
from banshee.models import ActivityType, PersonalBestsRegistry


def print_summary(activity) -> None:
    average_pace = pace.calculate_pace(activity.total_distance_meters, activity.duration_ms)

    print(f"\n{'='*60}")
    print(f"{activity.name} ({activity.activity_type.value})")
    print(f"{'='*60}")
    print(f"{'Points':<16}{len(activity.coordinates):>12}")
    print(f"{'Distance':<16}{pace.format_distance(activity.total_distance_meters):>12}")
    print(f"{'Duration':<16}{pace.format_duration(activity.duration_ms):>12}")
    print(f"{'Pace /km':<16}{pace.format_pace(average_pace):>12}")
    print(f"{'Pace /mi':<16}{pace.format_pace_per_mile(average_pace):>12}")
    print(f"{'Speed':<16}{activity.average_speed_kmh:>8.2f} km/h")


def print_splits(splits) -> None:
    if not splits:
        print("\nNo complete splits.")
        return

    header = f"{'Split':<8}{'Distance':>12}{'Time':>10}{'Pace':>10}{'Elapsed':>10}"
    print(f"\n{header}")
    print("-" * len(header))
    for split in splits:
        print(
            f"{split.number:<8}"
            f"{pace.format_distance(split.cumulative_distance_m):>12}"
            f"{pace.format_duration(split.duration_ms):>10}"
            f"{pace.format_pace(split.pace_sec_per_km):>10}"
            f"{pace.format_duration(split.cumulative_time_ms):>10}"
        )


def print_personal_bests(candidates, achieved) -> None:
    if not candidates:
        print("\nTrack is shorter than every standard distance.")
        return

    new_keys = {pb.key for pb in achieved}
    header = f"{'Distance':<16}{'Time':>10}{'Pace':>14}"
    print(f"\n{header}")
    print("-" * len(header))
    for pb in candidates:
        marker = "  NEW PB" if pb.key in new_keys else ""
        print(f"{pb.distance_name:<16}{pb.format_time():>10}{pb.format_pace():>14}{marker}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Print distance, splits and personal bests for a GPS track"
    )
    parser.add_argument(
        "--data-file",
        type=str,
        required=True,
        help="Path to a CSV or JSON track file"
    )
    parser.add_argument(
        "--activity-type",
        type=str,
        default=ActivityType.RUN.value,
        choices=[t.value for t in ActivityType],
        help="Activity type for files holding bare points (default: run)"
    )
    parser.add_argument(
        "--split-distance",
        type=float,
        default=constants.DEFAULT_SPLIT_DISTANCE_M,
        help="Split length in meters (default: 1000)"
    )
    parser.add_argument(
        "--registry",
        type=str,
        help="Personal-best registry JSON file to compare against"
    )
    parser.add_argument(
        "--update-registry",
        action="store_true",
        help="Write the updated registry back to --registry"
    )
    parser.add_argument(
        "--reference",
        type=str,
        help="Ghost reference track (CSV or JSON) to compare the finish time against"
    )
    parser.add_argument(
        "--splits-csv",
        type=str,
        help="Write the splits to this CSV file"
    )

    args = parser.parse_args(argv)

    data_file = Path(args.data_file)
    if not data_file.exists():
        print(f"Error: Data file not found: {data_file}")
        sys.exit(1)

    try:
        activity = session.load_activity(data_file, ActivityType(args.activity_type))

        registry = PersonalBestsRegistry()
        registry_file = Path(args.registry) if args.registry else None
        if registry_file is not None and registry_file.exists():
            registry = data_loading.registry_from_json(registry_file.read_text(encoding="utf-8"))

        reference = None
        if args.reference:
            reference = session.load_activity(Path(args.reference), activity.activity_type).coordinates
    except TrackDecodeError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    print_summary(activity)

    splits = pace.calculate_splits(activity.coordinates, args.split_distance)
    print_splits(splits)

    candidates = personal_best.calculate_pbs_for_activity(activity)
    updated, achieved = personal_best.update_pbs(registry, activity)
    print_personal_bests(candidates, achieved)

    if reference is not None:
        trace = ghost.build_delta_trace(reference, activity.coordinates)
        if trace:
            final_delta = trace[-1]["time_delta_s"]
            direction = "behind" if final_delta > 0 else "ahead of"
            print(f"\nFinished {abs(final_delta):.1f} s {direction} the reference track.")

    if args.splits_csv:
        Path(args.splits_csv).write_text(export.export_splits_csv(splits), encoding="utf-8")
        print(f"\nSaved splits to: {args.splits_csv}")

    if args.update_registry and registry_file is not None:
        registry_file.write_text(export.registry_to_json(updated, indent=2), encoding="utf-8")
        print(f"Saved {len(updated.records)} personal best(s) to: {registry_file}")

    print()


if __name__ == "__main__":
    main()
