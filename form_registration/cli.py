"""
Command line front end for form registration.

Usage:
    form-registration corners page.png
    form-registration region page.png 420 318 --padding 2
    form-registration rectify page.png --ideal 40,40 1600,40 1600,2300 40,2300 \\
        --rect 200,400,600,120 -o answer_1.png
"""

import argparse
import json
import sys
from typing import List, Optional

from .config import get_config
from .exceptions import DegenerateHomographyError, ImageDecodeError
from .image_processing import PixelBuffer, mark_areas_from_corners
from .models import CornerSet, DetectionSettings, Rectangle
from .services import RegistrationService
from .utils.logger import get_logger, setup_from_config

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_DEGENERATE = 3
EXIT_BAD_INPUT = 4


def _parse_point(text: str):
    try:
        x, y = (float(v) for v in text.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected x,y but got '{text}'")
    return (x, y)


def _parse_rect(text: str) -> Rectangle:
    try:
        x, y, w, h = (float(v) for v in text.split(','))
        return Rectangle(x=x, y=y, width=w, height=h)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected x,y,width,height but got '{text}'")


def _add_settings_args(parser: argparse.ArgumentParser):
    parser.add_argument('--min-size', type=int, default=None, help='Minimum mark/region size in pixels')
    parser.add_argument('--threshold', type=int, default=None, help='Dark/light grayscale cut (0-255)')
    parser.add_argument('--padding', type=int, default=None, help='Signed padding for detected regions')


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog='form-registration',
        description='Detect fiducial marks and regions on scanned forms and rectify them against a template'
    )
    sub = p.add_subparsers(dest='command', required=True)

    corners = sub.add_parser('corners', help='Locate the four corner marks')
    corners.add_argument('image', help='Scanned page image')
    corners.add_argument('--mark-areas', action='store_true', help='Also print display areas around the marks')
    _add_settings_args(corners)

    region = sub.add_parser('region', help='Detect the light region around a seed point')
    region.add_argument('image', help='Scanned page or template image')
    region.add_argument('x', type=float, help='Seed x coordinate')
    region.add_argument('y', type=float, help='Seed y coordinate')
    _add_settings_args(region)

    rectify = sub.add_parser('rectify', help='Cut a template rectangle out of a scanned page')
    rectify.add_argument('image', help='Scanned page image')
    rectify.add_argument('--ideal', nargs=4, type=_parse_point, required=True, metavar='X,Y',
                         help='Template corner marks in tl tr br bl order')
    rectify.add_argument('--corners', nargs=4, type=_parse_point, default=None, metavar='X,Y',
                         help='Known scan corners in tl tr br bl order (skips detection)')
    rectify.add_argument('--rect', type=_parse_rect, required=True, metavar='X,Y,W,H',
                         help='Target rectangle in template coordinates')
    rectify.add_argument('--output', '-o', required=True, help='Output image path (PNG keeps transparency)')
    _add_settings_args(rectify)

    return p.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> DetectionSettings:
    base = DetectionSettings.from_config()
    overrides = {
        'min_size': args.min_size,
        'threshold': args.threshold,
        'padding': args.padding,
    }
    values = base.model_dump()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return DetectionSettings(**values)


def _corners_to_dict(corners: CornerSet) -> dict:
    return {key: {'x': p.x, 'y': p.y} for key, p in zip(('tl', 'tr', 'br', 'bl'), corners.as_list())}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_from_config(get_config())

    try:
        settings = _settings_from_args(args)
        buffer = PixelBuffer.from_file(args.image)
    except (ImageDecodeError, ValueError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return EXIT_BAD_INPUT

    service = RegistrationService(settings=settings)

    if args.command == 'corners':
        corners = service.locate_corners(buffer)
        if corners is None:
            print('Corner marks not found. Try adjusting --threshold or --min-size.', file=sys.stderr)
            return EXIT_NOT_FOUND
        payload = {'corners': _corners_to_dict(corners)}
        if args.mark_areas:
            areas = mark_areas_from_corners(corners, buffer.width, buffer.height, settings)
            payload['mark_areas'] = {k: r.model_dump() for k, r in areas.items()}
        print(json.dumps(payload, indent=2))
        return EXIT_OK

    if args.command == 'region':
        rect = service.detect_region(buffer, (args.x, args.y))
        if rect is None:
            print('No enclosed region found at the seed point.', file=sys.stderr)
            return EXIT_NOT_FOUND
        print(json.dumps(rect.model_dump(), indent=2))
        return EXIT_OK

    # rectify
    ideal = CornerSet.from_list(args.ideal)
    known = CornerSet.from_list(args.corners) if args.corners else None
    result = service.detect_and_rectify(buffer, ideal, args.rect, source_corners=known)
    if not result.success:
        print(f'Error: {result.message}', file=sys.stderr)
        if result.reason == DegenerateHomographyError.reason:
            return EXIT_DEGENERATE
        return EXIT_NOT_FOUND

    result.image.save(args.output)
    logger.info(f"Wrote {result.image.width}x{result.image.height} region to {args.output}")
    print(json.dumps({'output': args.output, 'corners': _corners_to_dict(result.source_corners)}, indent=2))
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
