"""Diagnostic tool for verifying the httpsend installation and TLS support."""

import socket
import ssl
import sys
from importlib import import_module
from pathlib import Path
from typing import Optional

try:
    from rich.console import Console
    from rich.table import Table

    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False
    Console = None  # type: ignore
    Table = None  # type: ignore

from .http.tls import LEGACY_PSEUDO_PROTOCOL, platform_protocols


def check_dependency(module_name: str, package_name: Optional[str] = None) -> tuple[bool, str]:
    """
    Check if a Python module is importable.

    Args:
        module_name: Name of the module to import
        package_name: Display name of the package (defaults to module_name)

    Returns:
        Tuple of (success: bool, message: str)
    """
    display_name = package_name or module_name

    try:
        import_module(module_name)
        return True, f"[OK] {display_name}"
    except ImportError:
        return False, f"[MISSING] {display_name}"


def check_tls() -> list[tuple[bool, str]]:
    """Report the TLS library and the protocols this platform can negotiate."""
    protocols = platform_protocols()
    results = [(True, f"[OK] {ssl.OPENSSL_VERSION}")]
    if protocols:
        results.append((True, f"[OK] Supported protocols: {', '.join(protocols)}"))
    else:
        results.append((False, "[FAIL] No TLS protocol available"))
    results.append((True, f"[INFO] {LEGACY_PSEUDO_PROTOCOL} is never enabled"))
    return results


def check_network(hostname: str = "www.google.com") -> tuple[bool, str]:
    """
    Check basic network connectivity.

    Returns:
        Tuple of (success: bool, message: str)
    """
    try:
        socket.gethostbyname(hostname)
        return True, "[OK] Network connectivity"
    except socket.gaierror:
        return False, "[FAIL] Network connectivity - DNS resolution failed"
    except OSError as e:
        return False, f"[WARN] Network connectivity - {e}"


def check_download_dir(download_dir: Path) -> tuple[bool, str]:
    """
    Check if a download directory can be created and written to.

    Args:
        download_dir: Directory to check

    Returns:
        Tuple of (success: bool, message: str)
    """
    try:
        download_dir.mkdir(parents=True, exist_ok=True)

        test_file = download_dir / ".httpsend_test"
        test_file.write_text("test")
        test_file.unlink()

        return True, f"[OK] Download directory writable ({download_dir})"
    except PermissionError:
        return False, f"[FAIL] Download directory - permission denied ({download_dir})"
    except OSError as e:
        return False, f"[FAIL] Download directory - {e} ({download_dir})"


def run_doctor(download_dir: Optional[Path] = None, use_rich: bool = True) -> int:
    """
    Run diagnostic checks and display results.

    Args:
        download_dir: Download directory to check for writability
        use_rich: Whether to use rich formatting (if available)

    Returns:
        Exit code (0 if dependencies and TLS are OK, 1 otherwise)
    """
    use_rich = use_rich and RICH_AVAILABLE

    print("Running httpsend diagnostics...\n")

    dependency_results = [
        check_dependency(mod, pkg)
        for mod, pkg in [("pydantic", "pydantic"), ("rich", "rich"), ("yaml", "pyyaml")]
    ]
    tls_results = check_tls()
    system_checks = [check_network()]
    if download_dir is not None:
        system_checks.append(check_download_dir(download_dir))

    all_checks = {
        "Dependencies": dependency_results,
        "TLS": tls_results,
        "System": system_checks,
    }

    if use_rich:
        console = Console()

        for category, results in all_checks.items():
            table = Table(title=category, show_header=False, box=None)
            table.add_column("Status", style="bold")

            for success, message in results:
                style = "green" if success else ("yellow" if message.startswith("[WARN]") else "red")
                table.add_row(message, style=style)

            console.print(table)
            console.print()
    else:
        for category, results in all_checks.items():
            print(f"{category}:")
            for _success, message in results:
                print(f"  {message}")
            print()

    failed = any(not success for success, _ in dependency_results + tls_results)
    if failed:
        print("\nWARNING: httpsend is not fully functional!")
        print("\nRecommended fixes:")
        print("  1. Reinstall: pip install --upgrade --force-reinstall httpsend")
        print("  2. For development: pip install -e .[dev]")
        return 1

    print("\nhttpsend is ready to send requests.")
    return 0


if __name__ == "__main__":
    sys.exit(run_doctor())
