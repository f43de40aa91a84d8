from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from benchmark.models import BenchmarkReportModel
from core.deps import BenchmarkDep
from core.errors import InvalidInput

router = APIRouter(prefix="/benchmark", tags=["benchmark"])


# ---------------------------------------------------------------------
# POST /benchmark/run
# ---------------------------------------------------------------------
@router.post("/run", response_model=BenchmarkReportModel)
async def run_benchmark(harness: BenchmarkDep, file: Optional[UploadFile] = File(None)):
    """
    Upload/download the same file N times against FTP and the object store.

    Long-running: the whole run happens on the threadpool.
    """
    if file is None:
        raise InvalidInput("No file provided.")
    try:
        data = await file.read()
    except Exception as exc:
        raise InvalidInput(f"Failed to read file: {exc}") from exc

    report = await run_in_threadpool(harness.run, data, file.filename, file.content_type)
    return BenchmarkReportModel.from_report(report)
