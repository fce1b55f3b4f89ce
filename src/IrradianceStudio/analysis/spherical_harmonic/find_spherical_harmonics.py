import argparse
import json
import logging
import time
from pathlib import Path
from typing import List, Optional

import torch
from coolname import generate_slug

from IrradianceStudio.analysis.config import SHLightingConfig
from IrradianceStudio.analysis.core.irradiance import render_irradiance_map
from IrradianceStudio.analysis.core.radiance import ConstantRadiance, EquirectangularRadiance
from IrradianceStudio.analysis.spherical_harmonic.sph_context import SphericalHarmonics
from IrradianceStudio.analysis.utils.color import ColorSpace, change_color_space
from IrradianceStudio.analysis.utils.io import read_image, write_exr, write_png
from IrradianceStudio.analysis.utils.transforms import luminance

OUTPUT_DIR = "tmp/experiments"

AXES = {
    "+x": [1.0, 0.0, 0.0], "-x": [-1.0, 0.0, 0.0],
    "+y": [0.0, 1.0, 0.0], "-y": [0.0, -1.0, 0.0],
    "+z": [0.0, 0.0, 1.0], "-z": [0.0, 0.0, -1.0],
}

logger = logging.getLogger(__name__)

# python -m IrradianceStudio.analysis.spherical_harmonic.find_spherical_harmonics --hdri "tmp/source/1k/Abandoned Games Room 02.exr" --bands 3 --samples 100
# python -m IrradianceStudio.analysis.spherical_harmonic.find_spherical_harmonics --hdri "tmp/source/studio.png" --srgb --seed 7
# python -m IrradianceStudio.analysis.spherical_harmonic.find_spherical_harmonics --color 0.8 0.6 0.4 --srgb


def bake(sph: SphericalHarmonics, radiance_fn, name: str, output_dir: Path, config: SHLightingConfig,
         map_height: int) -> dict:
    """
    Project one radiance source and write <name>.json (+ irradiance maps).

    :returns report: the dictionary written to <name>.json
    """
    start_time = time.time()
    logger.info(f"Projecting {name} onto {sph.n_coeffs} coefficients...")
    sph.project(radiance_fn, batch_size=config.batch_size, num_workers=config.num_workers,
                progress=logger.isEnabledFor(logging.DEBUG))
    projection_time = time.time() - start_time
    logger.info(f"Spherical harmonics projection complete in {projection_time:.2f} seconds.")

    report = sph.to_cpu().to_dict()
    report["config"] = config.to_dict()

    if sph.has_irradiance:
        normals = torch.tensor(list(AXES.values()), dtype=torch.float64)
        irradiance = sph.irradiance(normals)
        report["axis_irradiance"] = {axis: value for axis, value in zip(AXES, irradiance.cpu().numpy().tolist())}

        irradiance_map = render_irradiance_map(sph.irradiance_matrices, map_height, 2 * map_height)
        write_exr(irradiance_map, output_dir / f"{name}_irradiance.exr")
        write_png(irradiance_map / torch.pi, output_dir / f"{name}_irradiance.png")
        logger.info(f"Wrote irradiance maps for {name}")
    else:
        logger.warning(f"Irradiance needs at least 3 bands, got {sph.n_bands}; only coefficients are written")

    with open(output_dir / f"{name}.json", "w") as f:
        json.dump(report, f, indent=2)
    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Bake radiance into spherical harmonics and irradiance matrices")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--hdri", type=str, nargs='+', help="List of equirectangular image paths")
    source.add_argument("--color", type=float, nargs=3, metavar=("R", "G", "B"), help="Uniform radiance color")
    parser.add_argument("--bands", type=int, default=3, help="Number of bands (default: 3)")
    parser.add_argument("--samples", type=int, default=100, help="Samples per axis, N^2 in total (default: 100)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the jittered samples")
    parser.add_argument("--batch_size", type=int, default=SHLightingConfig.batch_size, help="Samples per batch")
    parser.add_argument("--workers", type=int, default=1, help="Threads evaluating sample batches")
    parser.add_argument("--srgb", action="store_true", help="Inputs are sRGB encoded and get linearized")
    parser.add_argument("--map_height", type=int, default=64, help="Height of the irradiance map (width is 2x)")
    parser.add_argument("--output_dir", type=str, default=OUTPUT_DIR, help="Root directory for experiments")
    parser.add_argument("--device", type=str, default="auto", help="auto, cuda or cpu")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose (DEBUG) logging")
    args = parser.parse_args(argv)

    config = SHLightingConfig(n_bands=args.bands, samples_per_axis=args.samples, seed=args.seed,
                              batch_size=args.batch_size, num_workers=args.workers, device=args.device,
                              log_level="DEBUG" if args.verbose else "INFO")

    # Configure logging
    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),  # Output to console
        ]
    )
    logging.getLogger().setLevel(config.log_level)

    experiment_name = generate_slug(2)
    output_dir = Path(args.output_dir) / experiment_name
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Output directory: {output_dir}")

    color_space = ColorSpace.SRGB if args.srgb else ColorSpace.LINEAR
    sph = SphericalHarmonics.from_config(config)

    if args.color is not None:
        rgb = change_color_space(torch.tensor(args.color, dtype=torch.float64), color_space, ColorSpace.LINEAR)
        bake(sph, ConstantRadiance(rgb), "color", output_dir, config, args.map_height)
    else:
        for hdri_path in args.hdri:
            hdri_path = Path(hdri_path)
            image = read_image(hdri_path)
            logger.info(f"Processing {hdri_path.name} with shape {tuple(image.shape)}, "
                        f"mean luminance {luminance(image).mean().item():.4f}")
            radiance = EquirectangularRadiance(image.to(sph.samples.basis.device), color_space=color_space)
            bake(sph, radiance, hdri_path.stem, output_dir, config, args.map_height)

    print(f"Files saved to: {output_dir}")
    return 0


if __name__ == "__main__":
    exit(main())
