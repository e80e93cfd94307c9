"""
End-to-end migration of wallet files on disk, shared by the CLI scripts.

load (concurrent reads, joined) -> migrate -> export, then a printed summary
in the same style as the other operator tools.
"""

from dataclasses import dataclass, field

from migrator.cipher import SignatureCipher
from migrator.config import Settings, settings
from migrator.engine import MigrationEngine, MigrationReport
from migrator.export import DirectorySink, Sink, export
from migrator.records import count_wallets, load_wallet_files
from migrator.signing import WalletSide


@dataclass
class RunResult:
    report: MigrationReport
    parse_errors: list = field(default_factory=list)
    exported: int = 0

    @property
    def ok(self) -> bool:
        return (
            not self.parse_errors
            and not self.report.failures
            and self.exported == len(self.report.migrated_files)
        )


def migrate_paths(
    paths: list,
    old_side: WalletSide,
    new_side: WalletSide,
    config: Settings = None,
    sink: Sink = None,
) -> RunResult:
    config = config or settings
    sink = sink or DirectorySink(config.output_dir, overwrite=config.overwrite)

    files, parse_errors = load_wallet_files(paths)
    print(f"Loaded {len(files)} file(s) with {count_wallets(files)} wallet(s) total")
    for error in parse_errors:
        print(f"  [SKIP] {error}")

    engine = MigrationEngine(
        cipher=SignatureCipher.from_settings(config),
        old_passphrase=old_side.passphrase,
        new_passphrase=new_side.passphrase,
        new_address=new_side.address,
        fail_fast=config.fail_fast,
    )
    report = engine.run(files)
    exported = export(report.migrated_files, sink)
    return RunResult(report=report, parse_errors=parse_errors, exported=exported)


def print_summary(result: RunResult, output_dir: str = None):
    report = result.report
    print()
    print("=" * 70)
    print("Migration Complete")
    print("=" * 70)
    print()
    for outcome in report.outcomes:
        if outcome.ok:
            print(f"  [OK] {outcome.source} -> {outcome.migrated.filename}")
        else:
            print(f"  [ERROR] {outcome.error}")
    print()
    print(f"Successfully migrated: {len(report.migrated_files)}/{len(report.outcomes)} file(s)")
    print(f"Exported: {result.exported} file(s)" + (f" to {output_dir}" if output_dir else ""))

    if result.parse_errors or report.failures:
        print(f"Failed: {len(result.parse_errors) + len(report.failures)} file(s)")
        print()
        print("Failed files were not written. Check the signature used for the old wallet.")
