"""Command-line interface for Authentica."""
import argparse
import json
import logging
import sys
from pathlib import Path

from .codec import decode_image
from .exceptions import AuthenticaError
from .types import AnalysisOptions, ArchiveRecord, ContentType, FusionPolicy, Verdict
from .verify import Authentica


def _read_file(path_arg: str) -> bytes:
    path = Path(path_arg)
    if not path.exists():
        print(f"Error: File not found: {path_arg}", file=sys.stderr)
        sys.exit(1)
    return path.read_bytes()


def analyze_command(args):
    """Analyze image command."""
    engine = Authentica(max_workers=args.workers)
    content = _read_file(args.file)

    references = []
    for ref in args.reference or []:
        references.append(ArchiveRecord(entry_id=ref, content=decode_image(_read_file(ref))))

    options = AnalysisOptions(
        policy=FusionPolicy(args.policy),
        references=references,
        claimed_date=args.date,
    )

    result = engine.analyze_bytes(content, options)

    if args.json:
        print(json.dumps({
            "verdict": result.verdict.value,
            "final_score": round(result.final_score, 2),
            "suspicion_score": round(result.suspicion_score, 2),
            "confidence": round(result.confidence, 2),
            "policy": result.policy.value,
            "findings": list(result.findings),
            "breakdown": {
                name: {
                    "raw_value": entry.raw_value,
                    "component": entry.component,
                    "weight": entry.weight,
                    "contribution": entry.contribution,
                    "analyzed": entry.analyzed,
                }
                for name, entry in result.breakdown.items()
            },
        }, indent=2))
    else:
        print(f"\n{'='*60}")
        print("  Image Forensics Report")
        print(f"{'='*60}\n")
        print(f"File: {Path(args.file).resolve()}")
        print(f"Verdict: {result.verdict.value}")
        print(f"Suspicion: {result.suspicion_score:.0f}/100")
        print(f"Credibility: {result.final_score:.0f}/100")
        print(f"Confidence: {result.confidence:.0f}%")

        print("\nFindings:")
        for finding in result.findings:
            print(f"  • {finding}")

        print(f"\nSignals ({result.policy.value}):")
        for name, entry in result.breakdown.items():
            if entry.analyzed:
                print(f"  • {name}: {entry.contribution:.2f} (component {entry.component:.2f})")
            else:
                print(f"  - {name}: not analyzed")

        print(f"\n{result.explanation}")
        print(f"\n{'='*60}\n")

    sys.exit(0 if result.verdict is Verdict.AUTHENTIC else 1)


def compare_command(args):
    """Compare two artifacts command."""
    engine = Authentica()
    content_type = ContentType(args.type)

    first = _read_file(args.first)
    second = _read_file(args.second)
    if content_type is ContentType.TEXT:
        first = first.decode("utf-8", errors="replace")
        second = second.decode("utf-8", errors="replace")

    result = engine.compare(first, second, content_type)

    if args.json:
        print(json.dumps({
            "score": result.score,
            "variant_score": result.variant_score,
            "alteration_score": result.alteration_score,
            "error": result.error,
        }, indent=2))
    else:
        if result.error:
            print(f"Error: {result.error}", file=sys.stderr)
        print(f"Similarity: {result.score:.1%}")
        print(f"Variant score: {result.variant_score:.1f}")
        print(f"Alteration score: {result.alteration_score:.1f}")

    sys.exit(0 if result.error is None and result.score >= 0.5 else 1)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="authentica",
        description="CLI tool for image forensic analysis"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze image credibility")
    analyze_parser.add_argument("file", help="Image file to analyze")
    analyze_parser.add_argument(
        "-p", "--policy", choices=[p.value for p in FusionPolicy],
        default=FusionPolicy.ADDITIVE.value, help="Fusion policy (default: additive)"
    )
    analyze_parser.add_argument("-r", "--reference", nargs="+", help="Reference images for historical matching")
    analyze_parser.add_argument("-d", "--date", help="Claimed creation date of the image")
    analyze_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    analyze_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    analyze_parser.add_argument("-w", "--workers", type=int, default=1, help="Number of parallel threads for analysis (default: 1)")
    analyze_parser.set_defaults(func=analyze_command)

    # Compare command
    compare_parser = subparsers.add_parser("compare", help="Compare two artifacts")
    compare_parser.add_argument("first", help="First file")
    compare_parser.add_argument("second", help="Second file")
    compare_parser.add_argument(
        "-t", "--type", choices=[ContentType.IMAGE.value, ContentType.TEXT.value],
        default=ContentType.IMAGE.value, help="Content type (default: image)"
    )
    compare_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    compare_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    compare_parser.set_defaults(func=compare_command)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except AuthenticaError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
