from barstatus.providers.credentials import (
    ChainedCredentialProvider,
    CredentialProvider,
    FileCredentialProvider,
    KeychainCredentialProvider,
    default_credentials,
)
from barstatus.providers.git import GitStatus, GitStatusProvider, SubprocessGitStatusProvider
from barstatus.providers.quota import QuotaClient, QuotaReport, QuotaWindow, format_reset_in

__all__ = [
    "CredentialProvider",
    "ChainedCredentialProvider",
    "FileCredentialProvider",
    "KeychainCredentialProvider",
    "default_credentials",
    "GitStatus",
    "GitStatusProvider",
    "SubprocessGitStatusProvider",
    "QuotaClient",
    "QuotaReport",
    "QuotaWindow",
    "format_reset_in",
]
