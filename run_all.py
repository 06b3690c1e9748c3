"""
Run All Steps
==============
Execute the full author network pipeline:
  Step 1: Load & validate, degree table, GraphML export
  Step 2: Settle the force layout (positions, SVG, figure)
  Step 3: Interactive browser explorer

Usage:
    python run_all.py                # Full pipeline
    python run_all.py --skip 2       # Skip step 2 (explorer lays out in the browser)
    python run_all.py --only 3       # Run only step 3
"""

import argparse
import time


def run_step(step_num, skip_set, only_set):
    """Check if step should run based on --skip and --only flags."""
    if only_set and step_num not in only_set:
        return False
    if step_num in skip_set:
        return False
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description='Run author network pipeline')
    parser.add_argument('--skip', nargs='+', type=int, default=[],
                        help='Steps to skip (e.g., --skip 2)')
    parser.add_argument('--only', nargs='+', type=int, default=[],
                        help='Run only these steps (e.g., --only 1 3)')
    args = parser.parse_args(argv)

    skip = set(args.skip)
    only = set(args.only)

    start = time.time()
    print("=" * 60)
    print("  Author Collaboration Network Pipeline")
    print("=" * 60)

    # Step 1
    if run_step(1, skip, only):
        print("\n>>> Step 1: Load & Validate")
        from step1_load_network import main as step1_main
        step1_main([])
    else:
        print("\n>>> Step 1: SKIPPED")

    # Step 2
    if run_step(2, skip, only):
        print("\n>>> Step 2: Force Layout")
        from step2_layout import main as step2_main
        step2_main([])
    else:
        print("\n>>> Step 2: SKIPPED")

    # Step 3
    if run_step(3, skip, only):
        print("\n>>> Step 3: Interactive Explorer")
        from step3_visualize import main as step3_main
        step3_main([])
    else:
        print("\n>>> Step 3: SKIPPED")

    elapsed = time.time() - start
    print(f"\n{'=' * 60}")
    print(f"  Pipeline complete in {elapsed:.1f}s")
    print(f"{'=' * 60}")


if __name__ == '__main__':
    main()
