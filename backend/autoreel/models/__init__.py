# Models module
from autoreel.models.job import Job, JobStatus, JobType

__all__ = ["Job", "JobStatus", "JobType"]
