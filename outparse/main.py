"""Entry point for Outparse.

Usage:
    python -m outparse.main                    # serve the JSON API
    python -m outparse.main --check FILE       # one-shot analysis, print suggestions
    python -m outparse.main --engine api --surface free
"""
import argparse
import json
import logging
import sys


def setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_engine(config):
    """Create the analysis engine selected in config ("local" or "api")."""
    if config.engine == "api":
        from outparse.api_client import APIClient
        return APIClient(
            url=config.api_url,
            timeout_ms=config.api_timeout_ms,
            speech_url=config.speech_url,
            offset_units=config.offset_units,
        )
    from outparse.local_engine import LocalEngine
    return LocalEngine()


def run_server(config, host=None, port=None):
    from outparse.session import EditorSession
    from outparse.web import init_app

    session = EditorSession(config, build_engine(config))
    app = init_app(session)
    try:
        app.run(host=host or config.host, port=port or config.port,
                debug=config.debug_logging)
    finally:
        session.leave()


def run_check(config, path, as_json=False) -> int:
    """Analyse one file synchronously and print the validated suggestions."""
    from outparse.api_client import AnalysisError
    from outparse.importer import ImportFailure, read_path
    from outparse.session import EditorSession

    logger = logging.getLogger(__name__)
    session = EditorSession(config, build_engine(config), auto_analyze=False)
    session.credits = max(session.credits, 1)
    try:
        session.set_text(read_path(path))
        result = session.fix_grammar()
    except (AnalysisError, ImportFailure) as e:
        logger.error("%s", e)
        return 1

    if result is None:
        print("(nothing to check)")
        return 0
    if as_json:
        print(json.dumps(session.to_dict(), ensure_ascii=False, indent=2))
        return 0

    for s in session.suggestions:
        print(f"{s.index:>5}  {s.category.value:<10} {s.original!r} -> {s.replacement!r}  {s.explanation}")
    if result.stats:
        st = result.stats
        print(f"\nScore {st.score} ({st.level}), {st.word_count} words, "
              f"{st.sentence_count} sentences, {st.reading_time}")
    return 0


def main(argv=None):
    from outparse.config import Config, SURFACES

    parser = argparse.ArgumentParser(description="Outparse writing assistant")
    parser.add_argument("--config", default=None, help="Path to config.json")
    parser.add_argument("--engine", choices=["local", "api"], help="Analysis engine")
    parser.add_argument("--surface", choices=sorted(SURFACES), help="Product surface preset")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--check", metavar="FILE", help="Analyse FILE once and exit")
    parser.add_argument("--json", action="store_true", help="With --check: emit JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    config = Config(args.config)
    if args.engine:
        config.override("engine", args.engine)
    if args.surface:
        config.override("surface", args.surface)
    if args.debug:
        config.override("debug_logging", True)
    setup_logging(config.debug_logging)

    if args.check:
        return run_check(config, args.check, as_json=args.json)
    run_server(config, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
