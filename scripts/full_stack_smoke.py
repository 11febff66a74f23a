"""End-to-end smoke test that drives the simulation through the public API."""

from __future__ import annotations

from pathlib import Path
import sys

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from metabolab.main import app


def _pathway_payload() -> dict[str, object]:
    return {
        "num_molecules": 6,
        "num_enzymes": 5,
        "topology": "branched",
        "seed": 11,
    }


def main() -> None:
    with TestClient(app) as client:
        health = client.get("/health")
        health.raise_for_status()
        assert health.json()["status"] == "ok", "Health check failed"

        pathway = client.post("/pathway", json=_pathway_payload())
        pathway.raise_for_status()
        state = pathway.json()
        assert state["enzymes"], "Generated pathway has no enzymes"
        assert "E_source" in state["enzymes"], "Source enzyme missing"

        run = client.post("/run", json={"duration": 5.0})
        run.raise_for_status()
        data = run.json()
        assert 0 < data["steps"] <= 50, "Unexpected step count"
        concentrations = [molecule["concentration"] for molecule in data["state"]["molecules"].values()]
        assert all(value >= 0.0 for value in concentrations), "Negative concentration reported"
        for enzyme_id, scores in data["state"]["fitness"].items():
            assert 0.0 <= scores["total"] <= 1.0, f"Fitness out of range for {enzyme_id}"

        snapshot = client.get("/snapshot")
        snapshot.raise_for_status()
        restored = client.post("/snapshot", json=snapshot.json())
        restored.raise_for_status()
        assert restored.json()["time"] == data["state"]["time"], "Restore changed the clock"

        lineage = client.get("/lineage")
        lineage.raise_for_status()
        assert lineage.json()["items"], "Lineage is empty"


if __name__ == "__main__":
    main()
