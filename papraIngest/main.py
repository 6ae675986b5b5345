import argparse
import logging
import sys

import httpx

from papraIngest import config as config_module
from papraIngest.config import DEFAULT_CONFIG_PATH, load_config
from papraIngest.errors import PapraIngestError
from papraIngest.logging_utils import configure_logging


def _split_list(value):
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def build_parser():
    parser = argparse.ArgumentParser(description="Upload PDF documents to Papra, optionally with AI-generated tags")
    parser.add_argument("source", nargs="?", help="PDF file or folder (searched recursively)")
    parser.add_argument("--setup", help="Run the configuration wizard and exit", action="store_true")
    parser.add_argument("--config-file", help="Specify path to configuration file. Defaults to ~/.papraIngest.conf", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("-t", "--tags", help="Comma-separated tags to attach to every document", default=None)
    parser.add_argument("-o", "--ocr-languages", help="Comma-separated OCR language codes for Papra (e.g. 'eng,deu')", default=None)
    parser.add_argument("-a", "--autotag", help="Generate tags from document content with an LLM (needs an OpenRouter API key)", action="store_true")
    parser.add_argument("-d", "--debug", help="Debug level (0: no debug, 1: basic debug, 2: detailed debug)", type=int, choices=[0, 1, 2], default=1)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    # Map debug-Level to logging-level
    debug_levels = {0: logging.CRITICAL, 1: logging.INFO, 2: logging.DEBUG}
    configure_logging(
        level=debug_levels[args.debug],
        fmt='%(asctime)s - %(levelname)s ::: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    if args.setup:
        config_module.run_setup(args.config_file)
        return 0

    load_config(args.config_file)
    if not config_module.is_config_valid():
        logging.error("Configuration is invalid or missing. Running setup wizard...")
        config_module.run_setup(args.config_file)

    if config_module.is_autotag_available():
        logging.info("AI Tagging: Available (%s)", config_module.openrouter_settings()["model_name"])
    else:
        logging.info("AI Tagging: Unavailable (missing OpenRouter configuration)")

    if not args.source:
        logging.info("No source given, nothing to upload.")
        return 0

    ocr_languages = _split_list(args.ocr_languages)
    from papraIngest.ingest import PapraIngest, validate_ocr_languages
    valid, invalid = validate_ocr_languages(ocr_languages)
    if not valid:
        logging.error("Invalid OCR language(s): %s", ", ".join(invalid))
        return 1

    autotag = args.autotag
    if autotag and not config_module.is_autotag_available():
        logging.warning("--autotag requested but no OpenRouter API key is configured; skipping auto-tagging")
        autotag = False

    from papraIngest.papra_client import PapraClient
    settings = config_module.papra_settings()
    try:
        with PapraClient(settings["url"], settings["api_key"], settings["organization_id"]) as client:
            summary = PapraIngest(client).upload_pdfs(
                args.source,
                ocr_languages=ocr_languages,
                tags=_split_list(args.tags),
                autotag=autotag,
            )
    except (PapraIngestError, httpx.HTTPError) as e:
        logging.error(str(e))
        return 1

    return 1 if summary.failed else 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
