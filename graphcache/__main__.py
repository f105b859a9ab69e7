"""
Main entry point for graphcache
"""

import sys
import json
import logging
import argparse

from graphcache.config import load_config
from graphcache.models import (
    load_model,
    set_model_load_options,
    get_model_stats,
    get_cache_info,
    clear_cache,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='graphcache',
        description='graphcache: load inference graphs with a local model cache'
    )
    parser.add_argument('--config', type=str,
                        help='Path to a YAML or JSON loader configuration file')
    parser.add_argument('--cache-dir', type=str,
                        help='Override the cache directory')
    parser.add_argument('--debug', action='store_true',
                        help='Verbose load logging')

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Load command
    load_parser = subparsers.add_parser("load", help="Load one or more models")
    load_parser.add_argument("models", nargs="+", help="Model paths or URLs")
    load_parser.add_argument("--base-path", type=str, help="Base path or URL for relative model paths")
    load_parser.add_argument("--no-cache", action="store_true", help="Do not read from or save to the cache")
    load_parser.add_argument("--json", action="store_true", help="Output statistics in JSON format")
    load_parser.add_argument("--progress", action="store_true", help="Show a progress bar while downloading weights")

    # Info command
    info_parser = subparsers.add_parser("info", help="Display cache information")
    info_parser.add_argument("--json", action="store_true", help="Output in JSON format")

    # List command
    subparsers.add_parser("list", help="List cached models")

    # Clear command
    clear_parser = subparsers.add_parser("clear", help="Clear the cache")
    clear_parser.add_argument("--model", type=str, help="Clear only the specified model")

    return parser, parser.parse_args(argv)


def load_models(models, json_output=False):
    """Load models and report their statistics"""
    failed = 0
    for model_path in models:
        model = load_model(model_path)
        if not model.loaded:
            failed += 1

    stats = get_model_stats()
    if json_output:
        print(json.dumps(stats, indent=2))
    else:
        print(f"\nModel Load Statistics")
        print(f"=====================")
        for name, info in stats.items():
            print(f"  - {name}")
            print(f"    In cache: {info['in_cache']}")
            print(f"    Desired size: {info['size_desired']} bytes")
            print(f"    Manifest size: {info['size_from_manifest']} bytes")
            print(f"    Loaded weights: {info['size_loaded_weights']} bytes")
            print()

    return 1 if failed else 0


def display_cache_info(json_output=False):
    """Display information about the cache"""
    cache_info = get_cache_info()

    if json_output:
        print(json.dumps(cache_info, indent=2))
        return

    print(f"\ngraphcache Cache Information")
    print(f"============================")
    print(f"Cache Directory: {cache_info['cache_dir']}")
    print(f"Models Directory: {cache_info['models_dir']}")
    print(f"Total Cache Size: {cache_info['total_size_mb']:.2f} MB")
    if cache_info['free_space_mb'] is not None:
        print(f"Free Space: {cache_info['free_space_mb']:.2f} MB")

    if cache_info['models']:
        print(f"\nCached Models:")
        print(f"-------------")
        for model in cache_info['models']:
            print(f"  - {model['name']} ({model['url']})")
            print(f"    Path: {model['path']}")
            print(f"    Size: {model['size_mb']:.2f} MB")
            print(f"    Saved: {model['date_saved']}")
            if model['error']:
                print(f"    Error: {model['error']}")
            print()
    else:
        print("\nNo models in cache")


def main(argv=None):
    """Main entry point"""
    parser, args = parse_args(argv)

    config = load_config(args.config)
    if args.cache_dir:
        config.cache_dir = args.cache_dir
    if args.debug:
        config.debug = True
    if args.command == "load":
        if args.base_path:
            config.model_base_path = args.base_path
        if args.progress:
            config.show_progress = True
        if args.no_cache:
            config.cache_models = False
    set_model_load_options(config)

    if args.command == "load":
        return load_models(args.models, json_output=args.json)
    elif args.command == "info":
        display_cache_info(json_output=args.json)
    elif args.command == "list":
        for model in get_cache_info()['models']:
            if model['error']:
                print(f"{model['url']} ({model['error']})")
            else:
                print(model['url'])
    elif args.command == "clear":
        if not clear_cache(model_name=args.model):
            logger.error("Failed to clear cache")
            return 1
    else:
        parser.print_help()

    return 0


if __name__ == "__main__":
    sys.exit(main())
