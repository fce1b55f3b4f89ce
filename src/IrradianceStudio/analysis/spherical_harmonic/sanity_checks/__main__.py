"""
Main entry point for the spherical harmonic sanity checks package.
"""

import argparse
import logging

from .checks import run_all_sanity_checks


def main():
    parser = argparse.ArgumentParser(description='Run spherical harmonic sanity checks')
    parser.add_argument('--height', '-H', type=int, default=32, help='Height of test coordinates (default: 32)')
    parser.add_argument('--width', '-W', type=int, default=64, help='Width of test coordinates (default: 64)')
    parser.add_argument('--bands', type=int, default=4, help='Number of spherical harmonic bands (default: 4)')
    parser.add_argument('--samples', type=int, default=100, help='Samples per axis (default: 100)')
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose (DEBUG) logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    print("Spherical Harmonic Sanity Checks")
    print("=" * 40)
    print(f"Parameters: H={args.height}, W={args.width}, bands={args.bands}, samples={args.samples}^2")
    print()

    results = run_all_sanity_checks(args.height, args.width, args.bands, args.samples)

    print("=" * 60)
    if results['all_passed']:
        print("🎉 ALL CHECKS PASSED!")
    else:
        print("❌ SOME CHECKS FAILED!")

    return 0 if results['all_passed'] else 1


if __name__ == "__main__":
    exit(main())


"""
Usage Examples:

python -m IrradianceStudio.analysis.spherical_harmonic.sanity_checks
python -m IrradianceStudio.analysis.spherical_harmonic.sanity_checks --bands 6 --samples 200 -v
"""
