import json
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
import yaml

from his_import.commons.his_engine import HISEngine
from his_import.commons.logger import setup_logging
from his_import.services.import_service import ImportService

app = typer.Typer(add_completion=False, help="HIS dispensing export importer")


def resource_path(relative_path: str) -> str:
    """Absolute path to a bundled resource, both frozen (.exe) and in development."""
    if hasattr(sys, "_MEIPASS"):
        base_path = sys._MEIPASS
    else:
        base_path = os.path.abspath(".")

    return os.path.join(base_path, relative_path)


def load_cfg(path: str = "his_import/configs/settings.yaml") -> dict:
    config_path = resource_path(path)
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _bootstrap(config: Optional[str]):
    cfg = load_cfg(config) if config else load_cfg()
    engine = HISEngine(cfg)
    log_cfg = engine.settings.logging
    level = os.getenv("LOG_LEVEL", log_cfg.level)
    logger = setup_logging(engine.settings.paths.logs_root, level, log_cfg.retention, log_cfg.console)
    return engine, logger


@app.command()
def parse(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="HIS export file"),
    vendor: str = typer.Option("auto", help="auto | nhi | yaosheng | vision | drmaster | generic"),
    mask_ids: bool = typer.Option(False, "--mask-ids", help="Mask national ids in the output"),
    out_dir: Optional[Path] = typer.Option(None, help="Write the JSON payload here instead of stdout"),
    config: Optional[str] = typer.Option(None, help="Path to settings.yaml"),
):
    """Normalize one export and print (or write) the JSON payload."""
    engine, logger = _bootstrap(config)
    svc = ImportService(engine)
    result = svc.import_file(file, vendor)
    if out_dir:
        svc.write_payload(result, str(file), out_dir, mask_ids=mask_ids)
    else:
        typer.echo(json.dumps(engine.to_payload(result, mask_ids=mask_ids), ensure_ascii=False, indent=2))
    if not result.success:
        logger.warning(f"{file.name}: {result.failed} record(s) failed")
        raise typer.Exit(code=1)


@app.command()
def vendors():
    """List supported vendors and formats."""
    for v in HISEngine.list_supported_vendors():
        typer.echo(f"{v.code:<10} {v.name:<8} {','.join(v.formats):<16} {v.description}")


@app.command()
def roster(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Patient roster CSV"),
    config: Optional[str] = typer.Option(None, help="Path to settings.yaml"),
):
    """Import a patient roster CSV (national_id,name,birthday,phone,address,notes)."""
    engine, logger = _bootstrap(config)
    ImportService(engine).check_size(file.stat().st_size)
    summary, patients = engine.import_patient_roster(file.read_bytes())
    logger.info(f"Roster {file.name}: {summary.success}/{summary.total} imported")
    for err in summary.errors:
        typer.echo(err, err=True)
    typer.echo(json.dumps([asdict(p) for p in patients], ensure_ascii=False, indent=2))


@app.command()
def drugs(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="NHI drug master CSV"),
    config: Optional[str] = typer.Option(None, help="Path to settings.yaml"),
):
    """Import the NHI drug master CSV (code,name,supplier)."""
    engine, logger = _bootstrap(config)
    ImportService(engine).check_size(file.stat().st_size)
    summary, entries = engine.import_drug_master(file.read_bytes())
    logger.info(f"Drug master {file.name}: {summary.success}/{summary.total} imported")
    for err in summary.errors:
        typer.echo(err, err=True)
    typer.echo(json.dumps([asdict(d) for d in entries], ensure_ascii=False, indent=2))


if __name__ == "__main__":
    app()
