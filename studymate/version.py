"""StudyMate Meta information.
   StudyMate backend core: encrypted credential vault, API key records,
   AI provider dispatch and auth tokens.
"""
__title__ = 'studymate'
__description__ = (
   'StudyMate backend core: encrypted storage of AI provider keys '
   'and AI-generated study material.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2025 StudyMate'
__author__ = 'StudyMate Team'
__author_email__ = 'dev@studymate.app'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/studymate/studymate-backend'
