# bulk_generate_pdfs.py
import argparse
import logging
import os
from pathlib import Path

from config import Config
from pdf_service import render_invoice_pdf, pdf_filename
from state import AppState, default_settings
from storage import Storage


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Bulk generate invoice PDFs.")
    parser.add_argument("--data-dir", type=str, default=Config.DATA_DIR, help="Directory holding the JSON data files.")
    parser.add_argument("--out", type=str, default=Config.EXPORTS_DIR, help="Directory to write PDFs into.")
    parser.add_argument("--all", action="store_true", help="Regenerate PDFs even if one already exists.")
    parser.add_argument("--templates", action="store_true", help="Only export invoices flagged as templates.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=Config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    cfg = dict(vars(Config))
    cfg["DATA_DIR"] = args.data_dir
    state = AppState.from_storage(Storage(args.data_dir), default_settings=default_settings(cfg))
    company = state.get_settings().company

    invoices = state.list_invoices()
    if args.templates:
        invoices = [inv for inv in invoices if inv.template]

    if not invoices:
        print("No invoices found for the given filter.")
        return 0

    total = len(invoices)
    generated = 0
    skipped = 0
    failed = 0

    for i, inv in enumerate(invoices, start=1):
        path = out_dir / pdf_filename(inv)
        try:
            if path.exists() and not args.all:
                skipped += 1
                print(f"[{i}/{total}] SKIP  {inv.invoice_num} (already has PDF)")
                continue

            path.write_bytes(render_invoice_pdf(inv, company))
            generated += 1
            print(f"[{i}/{total}] DONE  {inv.invoice_num} -> {path}")

        except Exception as e:
            failed += 1
            print(f"[{i}/{total}] FAIL  {inv.invoice_num}  ({e})")

    print("\nBulk PDF generation complete.")
    print(f"Generated: {generated}")
    print(f"Skipped:   {skipped}")
    print(f"Failed:    {failed}")
    print(f"Exports:   {os.path.abspath(out_dir)}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
