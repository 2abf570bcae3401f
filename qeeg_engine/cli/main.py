"""
Main CLI entry point for qEEG Engine

This module provides the command-line interface for analyzing recordings,
running them through the job service, and generating synthetic uploads.
"""

import argparse
import json
import logging
import signal
import sys
from pathlib import Path

from ..core.config import *
from ..core.data_types import FileRef
from ..core.exceptions import QEEGError, JobTimeoutError
from ..acquisition.synthetic import STANDARD_MONTAGE, SyntheticEEG, write_recording
from ..pipeline.orchestrator import AnalysisOrchestrator
from ..storage.report_store import InMemoryReportStore, JsonReportStore
from ..jobs.manager import JobLifecycleManager
from ..jobs.poller import JobStatusPoller


def build_config(args) -> AnalysisConfig:
    """Analysis configuration from command line options"""
    return AnalysisConfig(
        bandpass=(args.bandpass_low, args.bandpass_high),
        notch_hz=args.notch,
        sampling_rate=args.sampling_rate,
        connectivity_n_jobs=args.n_jobs,
    )


def build_orchestrator(args) -> AnalysisOrchestrator:
    store = JsonReportStore(args.store_dir) if args.store_dir else InMemoryReportStore()
    return AnalysisOrchestrator(store=store, config=build_config(args))


def print_summary(report: dict):
    """Print the headline numbers of a report"""
    metrics = report["cognitive_metrics"]
    print("=" * 60)
    print(f"Report {report['report_id']}  session {report['session_id']}")
    print(f"Quality: {report['quality_score']:.1f}  "
          f"Artifacts: {report['artifact_fraction'] * 100:.1f}%")
    print("-" * 60)
    for name, value in metrics.items():
        print(f"  {name:>20}: {value:6.1f}")
    anomalies = report["pattern_analysis"]["anomalies"]
    if anomalies:
        print("-" * 60)
        for finding in anomalies:
            print(f"  {finding['region']:>8} {finding['severity']:>9}  {finding['description']}")
    print("-" * 60)
    for rec in report["recommendations"]:
        print(f"  [{rec['priority']}] {rec['category']}: {rec['recommendation']}")
    print("=" * 60)


def write_output(report: dict, out: str):
    path = Path(out)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)
    logging.info(f"Report written to {path}")


def run_analyze(args) -> int:
    """Analyze a recording synchronously"""
    orchestrator = build_orchestrator(args)
    file_ref = FileRef(patient_id=args.patient, session_id=args.session,
                       file_path=args.analyze)
    report = orchestrator.run(file_ref).to_dict()
    print_summary(report)
    if args.out:
        write_output(report, args.out)
    return 0


def run_submit(args) -> int:
    """Submit a recording as a job and poll until it finishes"""
    orchestrator = build_orchestrator(args)
    file_ref = FileRef(patient_id=args.patient, session_id=args.session,
                       file_path=args.submit)

    with JobLifecycleManager(orchestrator, workers=args.workers) as manager:
        submitted = manager.submit_job(file_ref)
        job_id = submitted["job_id"]
        print(f"Job {job_id} queued, estimated completion {submitted['estimated_completion']}")

        poller = JobStatusPoller(
            manager.get_job_status,
            interval=args.poll_interval,
            max_attempts=args.poll_attempts,
            on_status=lambda s: print(f"  {s['status']:>10}: {s['status_message']}"),
        )

        def signal_handler(signum, frame):
            logging.info("Shutdown signal received")
            poller.stop()

        previous_handler = signal.signal(signal.SIGINT, signal_handler)
        try:
            status = poller.poll(job_id)
        except JobTimeoutError as e:
            logging.error(str(e))
            return 2
        finally:
            signal.signal(signal.SIGINT, previous_handler)
        if status is None:
            return 130
        if status["status"] != "completed":
            logging.error(f"Job failed: {status['status_message']}")
            return 1

        report = manager.get_report(file_ref.session_id)

    print_summary(report)
    if args.out:
        write_output(report, args.out)
    return 0


def run_generate(args) -> int:
    """Write a synthetic recording"""
    labels = STANDARD_MONTAGE[:args.channels]
    fs = args.sampling_rate or 256.0
    source = SyntheticEEG(fs=fs, labels=labels, seed=args.seed)
    write_recording(args.generate, source.recording_bytes(args.duration))
    print(f"Wrote {args.duration:g}s of {len(labels)}-channel synthetic EEG to {args.generate}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser"""
    parser = argparse.ArgumentParser(
        description="qEEG Engine - Quantitative EEG analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a synthetic 60 s recording
  python -m qeeg_engine --generate data/demo.edf --duration 60

  # Analyze it directly
  python -m qeeg_engine --analyze data/demo.edf --patient p1 --session s1

  # Run it through the job service and store the report on disk
  python -m qeeg_engine --submit data/demo.edf --patient p1 --session s1 --store-dir reports
        """
    )

    # Mode selection (mutually exclusive)
    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument("--analyze", metavar="FILE",
                            help="Analyze a recording synchronously")
    mode_group.add_argument("--submit", metavar="FILE",
                            help="Submit a recording as a background job and poll it")
    mode_group.add_argument("--generate", metavar="FILE",
                            help="Write a synthetic recording")

    # Identity and storage
    parser.add_argument("--patient", default="anonymous",
                        help="Patient id (default: anonymous)")
    parser.add_argument("--session", default="session-1",
                        help="Session id (default: session-1)")
    parser.add_argument("--store-dir",
                        help="Directory for JSON reports (default: in-memory)")
    parser.add_argument("--out",
                        help="Also write the report JSON to this path")

    # Processing parameters
    parser.add_argument("--sampling-rate", type=float,
                        help="Override the sampling rate derived from the file")
    parser.add_argument("--notch", type=float, default=NOTCH_HZ,
                        help=f"Notch filter frequency (default: {NOTCH_HZ})")
    parser.add_argument("--bandpass-low", type=float, default=BANDPASS[0],
                        help=f"Bandpass low frequency (default: {BANDPASS[0]})")
    parser.add_argument("--bandpass-high", type=float, default=BANDPASS[1],
                        help=f"Bandpass high frequency (default: {BANDPASS[1]})")
    parser.add_argument("--n-jobs", type=int, default=CONNECTIVITY_N_JOBS,
                        help=f"Connectivity workers (default: {CONNECTIVITY_N_JOBS})")

    # Job service options
    parser.add_argument("--workers", type=int, default=JOB_WORKERS,
                        help=f"Background job workers (default: {JOB_WORKERS})")
    parser.add_argument("--poll-interval", type=float, default=POLL_INTERVAL_SEC,
                        help=f"Seconds between status polls (default: {POLL_INTERVAL_SEC})")
    parser.add_argument("--poll-attempts", type=int, default=POLL_MAX_ATTEMPTS,
                        help=f"Maximum status polls (default: {POLL_MAX_ATTEMPTS})")

    # Synthetic data options
    parser.add_argument("--duration", type=float, default=60.0,
                        help="Synthetic recording length in seconds (default: 60)")
    parser.add_argument("--channels", type=int, default=len(STANDARD_MONTAGE),
                        choices=range(1, len(STANDARD_MONTAGE) + 1), metavar="N",
                        help=f"Synthetic channel count (default: {len(STANDARD_MONTAGE)})")
    parser.add_argument("--seed", type=int,
                        help="Random seed for synthetic data")

    # Logging
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose logging")

    return parser


def main(argv=None) -> int:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        if args.generate:
            return run_generate(args)
        elif args.analyze:
            return run_analyze(args)
        elif args.submit:
            return run_submit(args)

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130
    except (QEEGError, ValueError) as e:
        logging.error(f"{type(e).__name__}: {e}")
        return 1
    except OSError as e:
        logging.error(f"File error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
