"""Application entry point for the SkillQuest development server."""

from __future__ import annotations

import argparse
from pathlib import Path

from skillquest.constants.about import APP_NAME, APP_VERSION
from skillquest.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from skillquest.core.question_loader import load_default_corpus, load_questions_from_file
from skillquest.core.quiz_manager import QuizManager
from skillquest.core.services.question_catalog import QuestionCatalog
from skillquest.server.api_server import run_api_server
from skillquest.storage.document_store import InMemoryDocumentStore
from skillquest.storage.identity import InMemoryIdentityProvider
from skillquest.utils.logging_config import configure_logging


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="skillquest", description=f"{APP_NAME} API server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--questions", help="Path to a question corpus JSON file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Initialize logging, load the question corpus, and serve the API."""
    args = _parse_args(argv)
    logger = configure_logging()
    logger.info("Starting %s %s…", APP_NAME, APP_VERSION)

    corpus = load_questions_from_file(Path(args.questions)) if args.questions else load_default_corpus()
    logger.info("Loaded %d questions from %s", len(corpus.questions), corpus.source_path)

    quiz_manager = QuizManager(
        catalog=QuestionCatalog(corpus.questions, corpus.categories),
        store=InMemoryDocumentStore(),
        identity=InMemoryIdentityProvider(),
    )
    logger.info("API available at http://%s:%d/", args.host, args.port)
    run_api_server(quiz_manager=quiz_manager, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
