import os
import sys
import json
from pathlib import Path

# Add python directory to path to import authentica
sys.path.append(os.path.join(os.path.dirname(__file__), '../python'))

from authentica.verify import Authentica
from authentica.types import AnalysisOptions, FusionPolicy


def main():
    print("--- Image Forensics (Python) ---")

    if len(sys.argv) < 2:
        print(f"Usage: {Path(__file__).name} IMAGE [REFERENCE ...]")
        sys.exit(1)

    image_path = Path(sys.argv[1])
    if not image_path.exists():
        print(f"Image not found: {image_path}")
        sys.exit(1)

    with open(image_path, "rb") as f:
        image_buffer = f.read()

    engine = Authentica(max_workers=4)
    print(f"Analyzing image: {image_path.name}")
    print(f"Image size: {len(image_buffer)} bytes")

    for policy in (FusionPolicy.ADDITIVE, FusionPolicy.WEIGHTED):
        result = engine.analyze_bytes(image_buffer, AnalysisOptions(policy=policy))

        print(f"\n[{policy.value.title()} fusion]")
        print(f"Verdict: {result.verdict.value}")
        print(f"Final score: {result.final_score:.1f}")
        print(f"Confidence: {result.confidence:.1f}")
        breakdown = {
            name: {"component": round(entry.component, 3), "analyzed": entry.analyzed}
            for name, entry in result.breakdown.items()
        }
        print(f"Breakdown: {json.dumps(breakdown, indent=2)}")


if __name__ == "__main__":
    main()
