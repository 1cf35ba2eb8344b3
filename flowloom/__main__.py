import argparse
import logging
import sys
from pathlib import Path

from .core.config.config_loader import get_settings
from .core.diagrams.service import FlowDiagramService


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)


logger = logging.getLogger(__name__)


def _generate_once(args, service: FlowDiagramService) -> int:
    """Run one generation from an analysis file and print the link block."""
    analysis_path = Path(args.analysis_file)
    try:
        analysis = analysis_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot read analysis file {analysis_path}: {e}")
        return 1

    bundle = service.generate_bundle(
        args.project, args.class_name, args.method_name, analysis,
    )
    print(service.format_links(bundle))
    return 0 if bundle.links else 2


def main():
    """Main entry point for FlowLoom."""
    parser = argparse.ArgumentParser(
        description="FlowLoom - Sequence and flow diagrams from code flow analysis"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=9005,
        help="Port for the API server"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--analysis-file",
        type=str,
        default=None,
        help="Generate diagrams for this analysis file and exit instead of serving"
    )
    parser.add_argument(
        "--project",
        type=str,
        default="default",
        help="Project folder for --analysis-file output"
    )
    parser.add_argument(
        "--class-name",
        type=str,
        default=None,
        help="Analysed class (required with --analysis-file)"
    )
    parser.add_argument(
        "--method-name",
        type=str,
        default=None,
        help="Analysed method"
    )
    args = parser.parse_args()

    setup_logging(args.log_level)

    settings = get_settings()
    service = FlowDiagramService()

    if args.analysis_file:
        if not args.class_name:
            parser.error("--class-name is required with --analysis-file")
        sys.exit(_generate_once(args, service))

    # Ensure the artifact root exists before serving
    Path(settings.resource_dir).mkdir(parents=True, exist_ok=True)
    logger.info(f"Starting FlowLoom - diagrams in {settings.resource_dir}")

    from .api.app import create_app
    app = create_app(diagram_service=service)

    import uvicorn

    logger.info(f"Starting FastAPI server on http://0.0.0.0:{args.port}")
    print(f"\n  FlowLoom is running at: http://localhost:{args.port}")
    print(f"  API docs at: http://localhost:{args.port}/docs\n")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
