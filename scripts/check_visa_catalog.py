from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from visacheck.core.visa_catalog import catalog_path, load_visa_catalog  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate a visa catalog YAML file and summarize it.")
    parser.add_argument(
        "--path",
        default=None,
        help="Catalog file (default: VISA_CATALOG_PATH or config/visa_types.yaml)",
    )
    args = parser.parse_args()

    path = Path(args.path) if args.path else catalog_path()
    try:
        catalog = load_visa_catalog(path)
    except RuntimeError as exc:
        print(f"INVALID: {exc}", file=sys.stderr)
        return 1

    for country in catalog.countries():
        print(f"{country.country_code} {country.country_name}")
        for visa in country.visa_types:
            docs = ", ".join(doc.document_type for doc in visa.required_documents if doc.is_required) or "-"
            print(
                f"  {visa.visa_type_id:<24} cap={visa.max_score_cap:<3} "
                f"min_exp={visa.min_experience_years} edu={visa.min_education_level} docs={docs}"
            )
    print(f"OK: {len(catalog.visa_types)} visa types in {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
