"""Text rendering of a benchmark report in the layout of ApacheBench."""

from .core.results import BenchmarkReport

PHASE_LABELS = (
    ("connect", "Connect:"),
    ("wait", "Waiting:"),
    ("transfer", "Transfer:"),
    ("total", "Total:"),
)


def format_report(report: BenchmarkReport) -> str:
    """Render the report as ab-style text."""
    counters = report.counters
    lines = [
        f"Server Software:        {counters.server_software}",
        f"Server Hostname:        {report.hostname}",
        f"Server Port:            {report.port}",
        "",
        f"Document Path:          {report.path}",
        f"Document Length:        {counters.document_length} bytes",
        "",
        f"Concurrency Level:      {report.concurrency}",
        f"Time taken for tests:   {counters.time_taken:.3f} seconds",
        f"Complete requests:      {counters.done_count}",
        f"Failed requests:        {counters.bad_count}",
    ]
    if counters.non_success_count > 0:
        lines.append(f"Non-2xx responses:      {counters.non_success_count}")
    lines.extend([
        f"Total transferred:      {counters.total_read} bytes",
        f"Requests per second:    {counters.requests_per_second:.2f} [#/sec] (mean)",
        f"Time per request:       {report.time_per_request_ms:.3f} [ms] (mean)",
        f"Time per request:       {counters.time_per_request_ms:.3f} [ms] "
        f"(mean, across all concurrent requests)",
        f"Transfer rate:          {counters.transfer_rate_kbps:.2f} [Kbytes/sec] received",
    ])

    if report.sample_count == 0:
        return "\n".join(lines)

    lines.extend([
        "",
        "Connection Times (ms)",
        "              min  mean[+/-sd] median   max",
    ])
    for phase, label in PHASE_LABELS:
        stats = report.phases[phase]
        lines.append(
            f"{label:<11}{stats.min_ms:>6.0f} {stats.mean_ms:>4.0f} {stats.stddev_ms:>5.1f} "
            f"{stats.median_ms:>6.0f} {stats.max_ms:>7.0f}"
        )

    lines.extend([
        "",
        "Percentage of the requests served within a certain time (ms)",
    ])
    for cut, value in report.percentiles:
        row = f" {cut:>3}% {value:>6.0f}"
        if cut == 100:
            row += " (longest request)"
        lines.append(row)

    return "\n".join(lines)
