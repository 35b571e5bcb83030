from .forms_db import FormRow, FormsDB, SubmissionRow

__all__ = ["FormsDB", "FormRow", "SubmissionRow"]
