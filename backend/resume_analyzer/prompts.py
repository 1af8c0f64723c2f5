"""
Resume Analyzer - Prompts
Contains the analysis prompt template sent to the completion endpoint.
"""

ANALYSIS_PROMPT_TEMPLATE = """You are a professional resume analyzer. Analyze the following resume against the job description and provide a detailed analysis.

Job Description:
{job_description}

Resume:
{resume}

Please provide your analysis in the following JSON format:
{{
  "skillsMatchPercentage": <number between 0-100>,
  "matchedSkills": ["skill1", "skill2", ...],
  "missingSkills": ["skill1", "skill2", ...],
  "improvementSuggestions": ["suggestion1", "suggestion2", ...],
  "overallFeedback": "detailed feedback about the resume quality and fit",
  "strengths": ["strength1", "strength2", ...],
  "weaknesses": ["weakness1", "weakness2", ...]
}}

Ensure the response is valid JSON only, no additional text."""


def build_analysis_prompt(job_description: str, resume: str) -> str:
    """Build the analysis prompt with job description and resume context."""
    return ANALYSIS_PROMPT_TEMPLATE.format(
        job_description=job_description,
        resume=resume
    )
