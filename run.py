#!/usr/bin/env python3
"""
Flaw Detector - Main Entry Point

Start the web application, or compare two images from the command line.

Usage:
    python run.py serve [--host HOST] [--port PORT] [--debug]
    python run.py compare BASE TARGET [--ransac-threshold PX] [--overlay OUT]

Example:
    python run.py serve --host 0.0.0.0 --port 5000 --debug
    python run.py compare reference.png frame.png --overlay boxes.png
"""

import argparse
import json
import logging
import sys

import cv2

from flawdetect import create_app
from flawdetect.core import DetectionParams, process_single_image
from flawdetect.core.overlay import draw_boxes


def serve(args):
    app = create_app()
    logging.getLogger(__name__).info(f"Server starting at http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def compare(args):
    params = DetectionParams(ransac_reproj_threshold=args.ransac_threshold,
                             max_features=args.max_features)
    try:
        result = process_single_image(args.base, args.target, params)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2))

    if args.overlay:
        target = cv2.imread(args.target, cv2.IMREAD_COLOR)
        cv2.imwrite(args.overlay, draw_boxes(target, result.boxes))
    return 0 if result.registered else 2


def main(argv=None):
    parser = argparse.ArgumentParser(description='Flaw Detector')
    parser.add_argument('--log-level', default='INFO', help='Logging level (default: INFO)')
    sub = parser.add_subparsers(dest='command')

    serve_parser = sub.add_parser('serve', help='Start the web application')
    serve_parser.add_argument('--host', default='0.0.0.0', help='Host to bind to (default: 0.0.0.0)')
    serve_parser.add_argument('--port', type=int, default=5000, help='Port to bind to (default: 5000)')
    serve_parser.add_argument('--debug', action='store_true', help='Enable debug mode')

    compare_parser = sub.add_parser('compare', help='Detect flaws in TARGET relative to BASE')
    compare_parser.add_argument('base', help='Reference image path')
    compare_parser.add_argument('target', help='Image to inspect')
    compare_parser.add_argument('--ransac-threshold', type=float, default=0.5,
                                help='RANSAC reprojection tolerance in pixels (default: 0.5)')
    compare_parser.add_argument('--max-features', type=int, default=5000,
                                help='ORB feature budget per image (default: 5000)')
    compare_parser.add_argument('--overlay', help='Write TARGET with detected boxes to this path')

    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command == 'compare':
        return compare(args)
    if args.command is None:
        args = parser.parse_args(list(argv if argv is not None else sys.argv[1:]) + ['serve'])
    return serve(args)


if __name__ == '__main__':
    sys.exit(main())
