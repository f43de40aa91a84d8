from __future__ import annotations

from pydantic import BaseModel

from benchmark.harness import BenchmarkReport, PhaseStats, TargetResult

# PascalCase keys are the published report shape.


def format_elapsed(seconds: float) -> str:
    """Render a duration as HH:MM:SS.fffffff (100ns resolution)."""
    ticks = int(round(max(0.0, seconds) * 10_000_000))
    whole, frac = divmod(ticks, 10_000_000)
    hours, rem = divmod(whole, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{frac:07d}"


class PhaseStatsModel(BaseModel):
    Successful: int
    Failed: int

    @classmethod
    def from_stats(cls, stats: PhaseStats) -> "PhaseStatsModel":
        return cls(Successful=stats.successful, Failed=stats.failed)


class TargetReportModel(BaseModel):
    UploadTime: str
    DownloadTime: str
    UploadStats: PhaseStatsModel
    DownloadStats: PhaseStatsModel

    @classmethod
    def from_result(cls, result: TargetResult) -> "TargetReportModel":
        return cls(
            UploadTime=format_elapsed(result.upload.elapsed),
            DownloadTime=format_elapsed(result.download.elapsed),
            UploadStats=PhaseStatsModel.from_stats(result.upload),
            DownloadStats=PhaseStatsModel.from_stats(result.download),
        )


class BenchmarkReportModel(BaseModel):
    FTP: TargetReportModel
    MinIO: TargetReportModel

    @classmethod
    def from_report(cls, report: BenchmarkReport) -> "BenchmarkReportModel":
        return cls(
            FTP=TargetReportModel.from_result(report.legacy),
            MinIO=TargetReportModel.from_result(report.object_store),
        )
