# scripts/seed_alumni.py
"""
Seeding tabel alumni dari "Daftar Nama Alumni.xlsx".

    python scripts/seed_alumni.py [path-ke-xlsx]
"""

import logging
import sys
from pathlib import Path

from openpyxl import load_workbook

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app  # noqa: E402
from app.extensions import require_supabase  # noqa: E402
from app.services.alumni_import import parse_rows, sheet_angkatan, upsert_alumni  # noqa: E402

DEFAULT_PATH = Path.home() / "Downloads" / "Daftar Nama Alumni.xlsx"


def seed_alumni(xlsx_path: Path) -> None:
    print(f"Membaca {xlsx_path} ...")
    wb = load_workbook(xlsx_path, read_only=True, data_only=True)
    sb = require_supabase()

    total = {"inserted": 0, "updated": 0, "errors": 0}
    for ws in wb.worksheets:
        angkatan = sheet_angkatan(ws.title)
        if angkatan is None:
            print(f"  Sheet '{ws.title}' tidak dikenali, dilewati")
            continue
        rows = [list(r) for r in ws.iter_rows(values_only=True)]
        alumni = parse_rows(rows, angkatan)
        result = upsert_alumni(sb, alumni, angkatan)
        print(f"  {ws.title} (TN{angkatan}): {len(alumni)} baris -> {result}")
        for k in total:
            total[k] += result[k]

    print(f"Seeding alumni selesai: {total}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_PATH
    if not path.exists():
        print(f"File tidak ditemukan: {path}")
        sys.exit(1)
    app = create_app()
    with app.app_context():
        seed_alumni(path)
