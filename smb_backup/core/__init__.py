"""Core backup stages and orchestration."""

from .copier import CopyEngine, Copier, RsyncCopier
from .credentials import CredentialResolver
from .models import BackupJob, BackupResult, Credential, JobState, MountHandle
from .mount import CifsMounter, Mounter, ShareMount
from .runner import BackupRunner

__all__ = [
    "BackupJob", "BackupResult", "Credential", "JobState", "MountHandle",
    "CredentialResolver", "ShareMount", "Mounter", "CifsMounter",
    "CopyEngine", "Copier", "RsyncCopier", "BackupRunner",
]
