# src/hwmgr_plugin/core/config.py

import logging
import os
import re

from dotenv import load_dotenv

# Load environment variables from a .env file located in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path)


class Config:
    """
    Handles the plugin's configuration by loading values from environment variables.
    """

    def __init__(self):
        # --- Vendor hardware manager credentials (used when no secret is referenced) ---
        self.DELL_CLIENT_ID = self._get_secret("DELL_CLIENT_ID")
        self.DELL_CLIENT_SECRET = self._get_secret("DELL_CLIENT_SECRET")

    @staticmethod
    def _get_secret(key: str, default: str = None) -> str:
        """
        Retrieves a secret from a file (mounted secret volume) or falls back to environment variable.

        Raises:
            PermissionError: If the secret file exists but cannot be read due to permissions.
            IOError: If the secret file exists but cannot be read due to I/O errors.
        """
        secret_file = f"/etc/hwmgr-plugin/secrets/{key}"
        if os.path.exists(secret_file):
            try:
                with open(secret_file, "r") as f:
                    value = f.read().strip()
                    logging.getLogger(__name__).debug(f"Loaded secret '{key}' from {secret_file}")
                    return value
            except PermissionError as e:
                raise PermissionError(
                    f"Secret file '{secret_file}' exists but cannot be read due to permission denied. "
                    f"Please check file permissions or run with appropriate privileges."
                ) from e
            except (IOError, OSError) as e:
                raise IOError(
                    f"Secret file '{secret_file}' exists but cannot be read: {e}. "
                    f"Please check the file integrity and system resources."
                ) from e
        return os.getenv(key, default)

    # The namespace is resolved at access time so tests and the CLI can
    # switch it after import.
    @property
    def NAMESPACE(self) -> str:
        return os.getenv("HWMGR_PLUGIN_NAMESPACE", "oran-hwmgr-plugin")

    @property
    def STORE_TYPE(self) -> str:
        return os.getenv("STORE_TYPE", "kubernetes").lower()

    # --- Cluster connection (ignored when running in-cluster) ---
    KUBECONFIG = os.getenv("KUBECONFIG", "")
    KUBE_CONTEXT = os.getenv("KUBE_CONTEXT", "")

    # --- Logging variables ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # --- Inventory API variables ---
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))

    # --- Store write retry policy (exponential backoff with a fixed ceiling) ---
    RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", "5"))
    RETRY_BASE_DELAY = float(os.getenv("RETRY_BASE_DELAY", "0.01"))
    RETRY_MAX_DELAY = float(os.getenv("RETRY_MAX_DELAY", "1.0"))

    # --- Reconciliation variables ---
    REQUEUE_SHORT_SECONDS = float(os.getenv("REQUEUE_SHORT_SECONDS", "15"))
    REQUEUE_MEDIUM_SECONDS = float(os.getenv("REQUEUE_MEDIUM_SECONDS", "60"))
    RESYNC_INTERVAL = os.getenv("RESYNC_INTERVAL", "5m")
    RECONCILE_WORKERS = int(os.getenv("RECONCILE_WORKERS", "4"))

    # --- HTTP client variables (vendor hardware manager API) ---
    DEFAULT_TIMEOUT_CONNECT = float(os.getenv("DEFAULT_TIMEOUT_CONNECT", "5"))
    DEFAULT_TIMEOUT_READ = float(os.getenv("DEFAULT_TIMEOUT_READ", "30"))
    USER_AGENT = os.getenv("USER_AGENT", "hwmgr-plugin")

    # --- Loopback adaptor ---
    LOOPBACK_CONFIGMAP_NAME = os.getenv("LOOPBACK_CONFIGMAP_NAME", "loopback-adaptor-nodelist")

    def validate_instance(self):
        if self.STORE_TYPE not in ("kubernetes", "memory"):
            raise ValueError("STORE_TYPE must be 'kubernetes' or 'memory'")
        if not re.match(r"^(\d+)([smh])$", self.RESYNC_INTERVAL.lower()):
            raise ValueError("RESYNC_INTERVAL format is invalid. Use 's', 'm', or 'h'.")
        if self.RETRY_MAX_ATTEMPTS < 1:
            raise ValueError("RETRY_MAX_ATTEMPTS must be at least 1.")
        if self.RETRY_BASE_DELAY > self.RETRY_MAX_DELAY:
            raise ValueError("RETRY_BASE_DELAY must not exceed RETRY_MAX_DELAY.")
        if self.RECONCILE_WORKERS < 1:
            raise ValueError("RECONCILE_WORKERS must be at least 1.")


# Instantiate the config to be imported by other modules
config = Config()
config.validate_instance()
