"""
Document Scanner - Command Line
Detect, rectify and enhance document photos

Run with:
    python main.py scan photo.jpg -o scanned.png --preset document
    python main.py analyze photo.jpg
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from loguru import logger

from docscan.config import load_config
from docscan.exceptions import ScannerError
from docscan.histogram import HistogramAnalyzer
from docscan.presets import PRESET_LABELS, FilterPreset
from docscan.scanner import DocumentScanner
from docscan.utils import load_image, save_image, setup_logging


def _parse_corners(raw: str):
    """'x1,y1;x2,y2;x3,y3;x4,y4' → [(x, y), ...]"""
    try:
        return [tuple(float(v) for v in pair.split(",")) for pair in raw.split(";")]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Bad corner list '{raw}': {e}") from e


def cmd_scan(args) -> int:
    scanner = DocumentScanner(args.config)
    page = scanner.scan_file(
        args.image,
        corners=args.corners,
        preset=args.preset,
        auto_enhance=args.auto or None,
    )

    output = args.output or str(Path(args.image).with_name(Path(args.image).stem + "_scanned.png"))
    save_image(page.processed_image, output)
    if args.thumbnail:
        save_image(page.thumbnail, args.thumbnail)

    print("\n" + "=" * 60)
    print("SCAN COMPLETE")
    print("=" * 60)
    print(f"  Output:      {output}")
    print(f"  Size:        {page.dimensions.width}x{page.dimensions.height}")
    print(f"  Preset:      {page.filter_preset}")
    print(f"  Confidence:  {page.detection_confidence:.2f}")
    if page.used_fallback_corners:
        print("  Corners:     full image (no document detected)")
    else:
        corners = ", ".join(f"({p.x:.0f},{p.y:.0f})" for p in page.corners)
        print(f"  Corners:     {corners}")
    if page.enhancement is not None:
        print(f"  Enhancement: {page.enhancement.model_dump(exclude_defaults=True)}")
    print("=" * 60 + "\n")
    return 0


def cmd_analyze(args) -> int:
    analyzer = HistogramAnalyzer()
    analysis = analyzer.analyze_image(load_image(args.image))
    rec = analyzer.recommend_enhancements(analysis)

    print("\n" + "=" * 60)
    print(f"ANALYSIS: {Path(args.image).name}")
    print("=" * 60)
    print(f"  Brightness:      {analysis.average_brightness:.1f}")
    print(f"  Contrast score:  {analysis.contrast_score:.1f}")
    print(f"  Dynamic range:   {analysis.dynamic_range}")
    print(f"  Underexposed:    {analysis.is_underexposed} ({analysis.shadow_clipping_pct:.1f}% clipped)")
    print(f"  Overexposed:     {analysis.is_overexposed} ({analysis.highlight_clipping_pct:.1f}% clipped)")
    print(f"  Shadows:         {analysis.shadow_pct:.1f}%")
    print(f"  Highlights:      {analysis.highlight_pct:.1f}%")
    if analysis.has_color_cast:
        print(f"  Color cast:      {analysis.color_cast_type.value} "
              f"(strength {analysis.color_cast_strength:.0f})")
    else:
        print("  Color cast:      none")
    print("-" * 60)
    print(f"  Recommended:     {rec.model_dump(exclude_defaults=True) or 'no changes'}")
    print("=" * 60 + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Document scanner: detect, rectify, enhance")
    parser.add_argument("--config", help="Path to scanner_config.yaml")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a document photo")
    scan.add_argument("image", help="Input image path")
    scan.add_argument("-o", "--output", help="Output image path")
    scan.add_argument("--preset", choices=[p.value for p in FilterPreset], default=None,
                      help=", ".join(f"{p.value} ({label})" for p, label in PRESET_LABELS.items()))
    scan.add_argument("--corners", type=_parse_corners,
                      help="Manual corners 'x1,y1;x2,y2;x3,y3;x4,y4'")
    scan.add_argument("--auto", action="store_true", help="Histogram-driven auto-enhance")
    scan.add_argument("--thumbnail", help="Also write the thumbnail here")
    scan.set_defaults(func=cmd_scan)

    analyze = sub.add_parser("analyze", help="Print histogram analysis and recommendations")
    analyze.add_argument("image", help="Input image path")
    analyze.set_defaults(func=cmd_analyze)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    log_cfg = load_config(args.config)['logging']
    setup_logging(log_cfg['log_file'], args.log_level or log_cfg['level'])

    try:
        return args.func(args)
    except (ScannerError, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
