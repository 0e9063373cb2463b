"""ResumeLM: AI-assisted resume authoring.

Profiles hold a user's career history; resumes are derived from them and can be
tailored to job postings through the tailoring pipeline.
"""

__version__ = "0.1.0"
