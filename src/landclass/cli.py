# src/landclass/cli.py

import argparse
import sys
import logging
from pathlib import Path
from typing import List, Optional

from landclass.exceptions import LandclassError
from landclass.raster import load, save, apply_band_roles, compute_indices, SENSOR_BANDS
from landclass.raster.indices import INDEX_ORDER
from landclass.classify import MODELS
from landclass.extract import extract_polygons
from landclass.pipeline import ClassificationConfig, auto_classify

log = logging.getLogger(__name__)

def setup_logging(level: int = logging.INFO) -> None:
    """
    Configures the standard logging format and level for the command-line interface.

    Args:
        level (int): The logging threshold level.
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def run_classify(args: argparse.Namespace) -> None:
    """
    Runs the classification workflow and writes the class raster (and optionally per-class polygons).
    """
    config = ClassificationConfig(
        sensor=args.sensor,
        rename_bands=not args.no_rename,
        subset=not args.no_subset,
        calc_indices=bool(args.indices),
        indices=tuple(args.indices) if args.indices else ClassificationConfig.indices,
        L=args.L,
        model=args.model,
        n_samples=args.n_samples,
        n_samples_v=args.n_samples_v,
        train_partition=None if args.no_validation else args.partition,
        random_state=args.seed
    )

    result = auto_classify(
        args.img,
        args.features,
        args.response_col,
        img2=args.img2,
        config=config
    )

    save(result.classified, args.output)

    fit = result.model_fit
    log.info(f"Training accuracy: {fit.train_accuracy:.3f} ({fit.n_train} samples)")
    if fit.has_validation:
        log.info(
            f"Validation overall accuracy: {fit.overall_accuracy:.3f}, "
            f"kappa: {fit.kappa:.3f} ({fit.n_validation} samples)"
        )
        log.info(f"Confusion matrix (rows = reference):\n{fit.confusion}")

    if args.polygons_dir:
        labels = {i + 1: label for i, label in enumerate(result.model.classes)}
        extract_polygons(result.classified, out_dir=args.polygons_dir, labels=labels)

def run_indices(args: argparse.Namespace) -> None:
    """
    Computes spectral indices for one image and writes the extended stack.
    """
    raster = load(args.img)
    if args.sensor:
        raster = apply_band_roles(raster, args.sensor, subset=not args.no_subset)
    raster = compute_indices(raster, args.indices, L=args.L)
    save(raster, args.output)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="landclass",
        description="Supervised land-cover classification of multispectral imagery"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sensors = sorted(SENSOR_BANDS)

    classify_parser = subparsers.add_parser(
        "classify",
        help="Preprocesses the image(s), trains a classifier and writes the class raster."
    )
    classify_parser.add_argument("img", type=Path, help="Image to classify.")
    classify_parser.add_argument("features", type=Path, help="Vector file with training points or polygons.")
    classify_parser.add_argument("response_col", help="Attribute holding the class label.")
    classify_parser.add_argument("--img2", type=Path, default=None, help="Second image for change detection.")
    classify_parser.add_argument("--sensor", choices=sensors, type=str.lower, default=None, help="Sensor of the image(s).")
    classify_parser.add_argument("--no-rename", action="store_true", help="Keep the original band names.")
    classify_parser.add_argument("--no-subset", action="store_true", help="Keep every band when renaming.")
    classify_parser.add_argument("--indices", nargs="+", type=str.lower, choices=INDEX_ORDER, default=None,
                                 help="Spectral indices to append before training.")
    classify_parser.add_argument("--L", type=float, default=None, help="Soil adjustment factor for SAVI.")
    classify_parser.add_argument("--model", choices=sorted(MODELS), default="rf", help="Classifier kind. Defaults to rf.")
    classify_parser.add_argument("--partition", type=float, default=0.66, help="Proportion of features used for training.")
    classify_parser.add_argument("--no-validation", action="store_true",
                                 help="Train on every feature and skip the validation report.")
    classify_parser.add_argument("--n-samples", type=int, default=100, help="Training pixels per class (polygons).")
    classify_parser.add_argument("--n-samples-v", type=int, default=50, help="Validation pixels per class (polygons).")
    classify_parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    classify_parser.add_argument("--output", type=Path, required=True, help="Output class raster.")
    classify_parser.add_argument("--polygons-dir", type=Path, default=None,
                                 help="Also write one polygon file per class to this directory.")
    classify_parser.set_defaults(func=run_classify)

    indices_parser = subparsers.add_parser(
        "indices",
        help="Appends spectral indices to an image."
    )
    indices_parser.add_argument("img", type=Path, help="Input image.")
    indices_parser.add_argument("output", type=Path, help="Output image.")
    indices_parser.add_argument("--indices", nargs="+", type=str.lower, choices=INDEX_ORDER, required=True,
                                help="Spectral indices to compute.")
    indices_parser.add_argument("--sensor", choices=sensors, type=str.lower, default=None,
                                help="Rename bands to their sensor roles first.")
    indices_parser.add_argument("--no-subset", action="store_true", help="Keep every band when renaming.")
    indices_parser.add_argument("--L", type=float, default=None, help="Soil adjustment factor for SAVI.")
    indices_parser.set_defaults(func=run_indices)

    return parser

def main(argv: Optional[List[str]] = None) -> None:
    """
    Parses command-line arguments and routes execution to the requested subcommand.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        args.func(args)
    except (LandclassError, FileNotFoundError, FileExistsError, ValueError, KeyError) as e:
        log.error(f"{args.command} failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
