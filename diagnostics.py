"""
Diagnostic: run the page scanners over saved HTML files (no network).
Reports which result fields are filled vs missing for each file.
"""

import sys
from pathlib import Path

from config import get_settings
from extractor import RESULT_FIELDS, build_result
from pricing import find_price_candidates

DATA_DIR = Path(__file__).parent / "data"


def diagnose_file(filepath: Path, base_url: str = "https://example.com/") -> dict:
    html = filepath.read_text(encoding="utf-8", errors="replace")
    result = build_result(html, base_url, get_settings().pricing)

    report = {
        "file": filepath.name,
        "html_chars": len(html),
        "price_candidates": len(find_price_candidates(html)),
        "fields": {},
        "missing": [],
        "filled": [],
    }

    for field in RESULT_FIELDS:
        val = getattr(result, field)
        if val is None or val == "" or val == []:
            report["missing"].append(field)
            report["fields"][field] = None
            continue
        report["filled"].append(field)
        if field == "variants":
            report["fields"][field] = f"{len(val)} variants"
            for v in val[:3]:
                report["fields"][field] += f"\n      {v.name} id={v.id} available={v.available}"
            if len(val) > 3:
                report["fields"][field] += f"\n      ... and {len(val) - 3} more"
        elif isinstance(val, list):
            if len(val) <= 5:
                report["fields"][field] = val
            else:
                report["fields"][field] = f"{len(val)} items: {val[:3]} + {len(val) - 3} more"
        elif isinstance(val, str):
            report["fields"][field] = val[:150] + ("..." if len(val) > 150 else "")
        else:
            report["fields"][field] = str(val)

    return report


def main(data_dir: Path = DATA_DIR) -> list[dict]:
    html_files = sorted(data_dir.glob("*.html"))
    print(f"Diagnosing {len(html_files)} files (scanners only, NO network)\n")

    all_reports = []
    for filepath in html_files:
        report = diagnose_file(filepath)
        all_reports.append(report)

        print(f"{'=' * 70}")
        print(f"  {report['file']}")
        print(f"{'=' * 70}")
        print(f"  {report['html_chars']} chars | {report['price_candidates']} price candidates")

        print(f"\n  Filled ({len(report['filled'])}/{len(RESULT_FIELDS)}):")
        for field in report["filled"]:
            lines = str(report["fields"][field]).split("\n")
            print(f"    {field}: {lines[0]}")
            for line in lines[1:]:
                print(f"    {line}")

        if report["missing"]:
            print(f"\n  MISSING ({len(report['missing'])}): {report['missing']}")
        else:
            print("\n  All fields filled!")
        print()

    # Summary table
    print(f"\n{'=' * 70}")
    print("SUMMARY: Field coverage across all files")
    print(f"{'=' * 70}")
    print(f"{'Field':<20} ", end="")
    for r in all_reports:
        print(f"{r['file'][:12]:<14}", end="")
    print()
    print("-" * 90)

    for field in RESULT_FIELDS:
        print(f"{field:<20} ", end="")
        for r in all_reports:
            print(f"{'OK' if field in r['filled'] else 'MISSING':<14}", end="")
        print()

    return all_reports


if __name__ == "__main__":
    main(Path(sys.argv[1]) if len(sys.argv) > 1 else DATA_DIR)
