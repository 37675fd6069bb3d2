"""Services for StudyDesk."""
