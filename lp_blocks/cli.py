"""Command line entry point: ``lp-blocks <command> ...``."""
import argparse
import json
import logging
import sys

import requests

from .builder import build
from .classifier import parse_html
from .editing import flatten_blocks
from .errors import InvalidInputError
from .fetcher import build_image_map, fetch_page
from .models import MutationConfig, coerce_model
from .text_modifier import (
    analyze_for_replacement,
    apply_block_replacements,
    apply_text_modifications,
    generate_config_template,
)
from .validator import validate_sb_html


def _read_text(path):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        sys.exit(1)


def _read_config(path):
    if not path:
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error reading config file: {e}", file=sys.stderr)
        sys.exit(1)


def _write_output(text, output_file):
    if not output_file:
        print(text)
        return
    try:
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(text)
        print(f"Output saved to: {output_file}", file=sys.stderr)
    except OSError as e:
        print(f"Error writing output file: {e}", file=sys.stderr)
        sys.exit(1)


def _dump(payload):
    return json.dumps(payload, indent=2, ensure_ascii=False)


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_parse(args):
    structure = parse_html(_read_text(args.html_file), config=_read_config(args.config))
    _write_output(_dump(structure.to_wire()), args.output)


def cmd_analyze(args):
    analysis = analyze_for_replacement(_read_text(args.html_file), config=_read_config(args.config))
    payload = analysis.to_wire()
    if args.template:
        payload["template"] = generate_config_template(analysis).to_wire()
    _write_output(_dump(payload), args.output)


def cmd_modify(args):
    html = _read_text(args.html_file)
    config = coerce_model(MutationConfig, _read_config(args.config))

    if config.block_replacements:
        blocks = parse_html(html).blocks
        html = flatten_blocks(apply_block_replacements(blocks, config.block_replacements))

    _write_output(apply_text_modifications(html, config), args.output)


def cmd_build(args):
    config = _read_config(args.config) or {}
    if args.cta_url:
        config["ctaUrl"] = args.cta_url
    if args.seed is not None:
        config["idSeed"] = args.seed

    result = build(_read_text(args.html_file), config)
    if args.json:
        _write_output(_dump(result.to_wire()), args.output)
    else:
        _write_output(result.html, args.output)
    if not result.validation.valid:
        sys.exit(2)


def cmd_validate(args):
    report = validate_sb_html(_read_text(args.html_file))
    print(_dump(report.to_wire()))
    if not report.valid:
        sys.exit(2)


def cmd_fetch(args):
    try:
        result = fetch_page(args.url, asset_dir=args.asset_dir)
    except requests.RequestException as e:
        print(f"Error fetching page: {e}", file=sys.stderr)
        sys.exit(1)
    payload = result.to_wire()
    if args.asset_dir:
        payload["imageMap"] = build_image_map(result.assets, args.url_prefix or "")
    _write_output(_dump(payload), args.output)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='lp-blocks',
        description='Decompose landing pages into blocks and rebuild them as Squad Beyond HTML',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('parse', help='Classify a page into blocks (JSON)')
    p.add_argument('html_file', help='Input HTML file')
    p.add_argument('-c', '--config', help='Classifier config JSON file')
    p.add_argument('-o', '--output', help='Output file (defaults to stdout)')
    p.set_defaults(func=cmd_parse)

    p = sub.add_parser('analyze', help='Suggest replacement terms, CTA links and prices')
    p.add_argument('html_file', help='Input HTML file')
    p.add_argument('-c', '--config', help='Text config JSON file')
    p.add_argument('-t', '--template', action='store_true', help='Include a starter mutation config')
    p.add_argument('-o', '--output', help='Output file (defaults to stdout)')
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser('modify', help='Apply a mutation config to a page')
    p.add_argument('html_file', help='Input HTML file')
    p.add_argument('-c', '--config', required=True, help='Mutation config JSON file')
    p.add_argument('-o', '--output', help='Output file (defaults to stdout)')
    p.set_defaults(func=cmd_modify)

    p = sub.add_parser('build', help='Build Squad Beyond HTML')
    p.add_argument('html_file', help='Input HTML fragment')
    p.add_argument('-c', '--config', help='Build config JSON file')
    p.add_argument('--cta-url', help='Retarget CTA links to this URL')
    p.add_argument('--seed', type=int, help='Seed for deterministic widget ids')
    p.add_argument('--json', action='store_true', help='Emit html plus validation report as JSON')
    p.add_argument('-o', '--output', help='Output file (defaults to stdout)')
    p.set_defaults(func=cmd_build)

    p = sub.add_parser('validate', help='Check a fragment against Squad Beyond rules')
    p.add_argument('html_file', help='Input HTML fragment')
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser('fetch', help='Download a page and its media')
    p.add_argument('url', help='Page URL')
    p.add_argument('-d', '--asset-dir', help='Directory for downloaded media')
    p.add_argument('-p', '--url-prefix', help='Public URL prefix for the image map')
    p.add_argument('-o', '--output', help='Output file (defaults to stdout)')
    p.set_defaults(func=cmd_fetch)

    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )
    try:
        args.func(args)
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
