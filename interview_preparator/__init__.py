"""
Interview Preparator: practice interviews with an AI interviewer.

The final round is a spoken conversation: questions are synthesized and
played, answers are recorded from the microphone and transcribed, and the
language model asks follow-up questions until the turn budget is spent.
"""

__version__ = "1.0.0"
__author__ = "Your Name"

# Main entry points
from .interview.controller import InterviewSessionController
from .interview.models import Turn, Speaker, InterviewResult
from .interview.schemas import SessionState

__all__ = ["InterviewSessionController", "Turn", "Speaker", "InterviewResult", "SessionState"]
