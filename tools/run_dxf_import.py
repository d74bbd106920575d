import argparse
import json
import logging
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def _collect_inputs(dxf_dir: Path) -> list[Path]:
    return sorted(p for p in dxf_dir.glob("*") if p.suffix.lower() == ".dxf")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run DXF import on a directory of DXF samples."
    )
    parser.add_argument(
        "--dxf-dir",
        default="test/dxf",
        help="DXF目录（默认：test/dxf）",
    )
    parser.add_argument(
        "--config",
        default="config/geoloader_runtime.yaml",
        help="运行期配置文件（默认：config/geoloader_runtime.yaml）",
    )
    parser.add_argument(
        "--source-crs",
        default="",
        help="可选：显式源坐标系（如 EPSG:2056），为空时自动识别",
    )
    parser.add_argument(
        "--out-dir",
        default="",
        help="可选：输出 GeoJSON 目录",
    )
    args = parser.parse_args()

    _add_backend_to_path()
    from geoloader.config import reload_config  # type: ignore
    from geoloader.pipeline import DxfImporter, MemoryFeatureSink  # type: ignore

    config = reload_config(args.config)
    logging.basicConfig(level=config.logging.log_level)

    inputs = _collect_inputs(Path(args.dxf_dir))
    if not inputs:
        print("未找到可处理文件")
        return 1

    out_dir = Path(args.out_dir) if args.out_dir else None
    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)

    importer = DxfImporter(config)
    sink = MemoryFeatureSink()
    for path in inputs:
        try:
            persisted = importer.import_and_store(path, sink, source_crs=args.source_crs or None)
            result = sink.results[-1]
            summary = result.stats
            print(
                f"{path.name}: features={persisted.imported} failed={persisted.failed} "
                f"entities={summary.total_entities} expanded={summary.expanded_entities} "
                f"skipped={summary.skipped} crs={result.source_crs}->{result.target_crs} "
                f"diagnostics={len(result.diagnostics)}"
            )
            if out_dir:
                target = out_dir / f"{path.stem}.geojson"
                target.write_text(
                    json.dumps(result.to_feature_collection(), ensure_ascii=False),
                    encoding="utf-8",
                )
        except Exception as exc:  # noqa: BLE001
            print(f"{path.name}: ERROR {exc}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
