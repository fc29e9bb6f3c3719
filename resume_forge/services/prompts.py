"""Prompt templates for resume and cover letter generation.

Every builder is a pure function returning an ordered message list
(system instruction, user instruction) ready for a provider client.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

Messages = List[Dict[str, str]]

WORD_RANGES = {
    'short': '200-250',
    'medium': '300-400',
    'long': '450-600',
}

VARIATION_APPROACHES = {
    1: "Focus on achievements and quantifiable results. Use a confident, results-driven approach.",
    2: "Emphasize cultural fit and passion for the company/industry. Use a more personal, enthusiastic tone.",
    3: "Highlight problem-solving abilities and unique value proposition. Use a strategic, solution-oriented approach.",
}
BALANCED_APPROACH = "Create a balanced approach combining achievements, passion, and strategic thinking."


@dataclass(frozen=True)
class ResumeInputs:
    content: str
    job_description: Optional[str]
    target_role: Optional[str]
    industry: Optional[str] = None
    experience_level: Optional[str] = None


@dataclass(frozen=True)
class CoverLetterInputs:
    resume_content: str
    job_description: Optional[str]
    company_name: Optional[str]
    target_role: Optional[str]
    hiring_manager_name: Optional[str] = None
    tone: str = 'professional'
    length: str = 'medium'


def word_range(length: str) -> str:
    return WORD_RANGES.get(length, WORD_RANGES['medium'])


def regional_context(country: Optional[str]) -> str:
    if country == 'US':
        return 'American'
    if country in ('UK', 'GB'):
        return 'British'
    return 'International'


def _pair(system: str, user: str) -> Messages:
    return [
        {"role": "system", "content": system.strip()},
        {"role": "user", "content": user.strip()},
    ]


def build_optimization_messages(inputs: ResumeInputs, country: Optional[str] = None) -> Messages:
    system = f"""
You are an expert ATS (Applicant Tracking System) resume optimizer and career consultant with 15+ years of experience helping professionals land their dream jobs.

Your expertise includes:
- ATS optimization and keyword placement
- Industry-specific terminology and requirements
- Achievement quantification and impact demonstration
- Modern resume formatting and structure
- Recruiter psychology and hiring trends

CRITICAL REQUIREMENTS:
1. Maintain factual accuracy - never fabricate experience or skills
2. Focus on ATS-friendly formatting and keyword optimization
3. Quantify achievements with specific metrics where possible
4. Use industry-standard terminology for the target role
5. Ensure readability for both ATS systems and human reviewers
6. Prioritize relevance to the specific job description provided
7. Consider regional preferences for {country or 'US'} job market

Format your response as a complete, polished resume ready for submission.
"""
    user = f"""
ORIGINAL RESUME:
{inputs.content}

JOB DESCRIPTION:
{inputs.job_description}

TARGET ROLE: {inputs.target_role}
INDUSTRY: {inputs.industry or 'Not specified'}
EXPERIENCE LEVEL: {inputs.experience_level or 'Not specified'}

Please optimize this resume for the specific job posting. Focus on:
1. Incorporating relevant keywords from the job description naturally
2. Highlighting the most relevant experience for this role
3. Quantifying achievements with specific metrics where possible
4. Improving ATS compatibility and keyword density
5. Maintaining the candidate's authentic voice and experience
6. Ensuring the resume passes ATS screening for this specific job

Provide the optimized resume in a clean, professional format.
"""
    return _pair(system, user)


def build_keyword_messages(job_description: str) -> Messages:
    return _pair(
        "You are an ATS keyword extraction expert. Extract the most important keywords and phrases "
        "from job descriptions that should be included in resumes for optimal ATS scoring.",
        "Extract the top 20 most important keywords and phrases from this job description that would "
        f"improve ATS scores:\n\n{job_description}\n\nReturn as a comma-separated list, prioritized by importance.",
    )


def build_ats_messages(resume_content: str, job_description: str) -> Messages:
    user = f"""
RESUME:
{resume_content}

JOB DESCRIPTION:
{job_description}

Provide an ATS compatibility analysis including:
1. Overall ATS Score (0-100), written on its own line as "Score: <number>"
2. Keyword Match Percentage
3. Top 5 missing keywords that should be added
4. Formatting issues that might hurt ATS parsing
5. Specific recommendations for improvement

Format as structured analysis with clear scores and actionable feedback.
"""
    return _pair(
        "You are an ATS scoring expert. Analyze resumes against job descriptions and provide detailed "
        "ATS compatibility scores and improvement suggestions.",
        user,
    )


def _cover_letter_system(inputs: CoverLetterInputs, country: Optional[str]) -> str:
    region = regional_context(country)
    return f"""
You are an expert cover letter writer and career consultant with 15+ years of experience helping professionals secure interviews and job offers.

Your expertise includes:
- {region} business communication standards
- Industry-specific language and terminology
- Compelling storytelling and achievement highlighting
- ATS-friendly formatting and keyword optimization
- Psychology of hiring managers and recruiters
- Modern professional communication trends

CRITICAL REQUIREMENTS:
1. Write in a {inputs.tone} tone that feels authentic and engaging
2. Create a {inputs.length} length cover letter ({word_range(inputs.length)} words)
3. Match the candidate's authentic voice and experience from their resume
4. Incorporate specific details from the job description naturally
5. Highlight 2-3 most relevant achievements with quantified impact
6. Include a compelling opening that grabs attention
7. End with a confident call-to-action
8. Ensure ATS compatibility with relevant keywords
9. Follow {region} business letter conventions
10. Never fabricate experience or skills not in the original resume

Format as a complete, ready-to-send cover letter with proper structure.
"""


def _cover_letter_user(inputs: CoverLetterInputs) -> str:
    if inputs.hiring_manager_name:
        greeting = f"Dear {inputs.hiring_manager_name},"
    else:
        greeting = "Dear Hiring Manager,"

    return f"""
CANDIDATE'S RESUME:
{inputs.resume_content}

JOB POSTING:
{inputs.job_description}

POSITION: {inputs.target_role} at {inputs.company_name}
GREETING: {greeting}
TONE: {inputs.tone.capitalize()}
LENGTH: {inputs.length.capitalize()} ({word_range(inputs.length)} words)

Create a compelling cover letter that:
1. Opens with a strong, attention-grabbing first paragraph
2. Demonstrates clear understanding of the role and company
3. Highlights the candidate's most relevant experience and achievements
4. Shows genuine enthusiasm for the opportunity
5. Includes specific examples with quantified results where possible
6. Addresses key requirements from the job posting
7. Concludes with a confident call-to-action

The cover letter should feel personal, authentic, and tailored specifically to this opportunity.
"""


def build_cover_letter_messages(inputs: CoverLetterInputs, country: Optional[str] = None) -> Messages:
    return _pair(_cover_letter_system(inputs, country), _cover_letter_user(inputs))


def build_variation_messages(inputs: CoverLetterInputs, version: int,
                             country: Optional[str] = None) -> Messages:
    """Messages for the ``version``-th variation (1-based)."""
    approach = VARIATION_APPROACHES.get(version, BALANCED_APPROACH)
    user = f"{_cover_letter_user(inputs).strip()}\n\nVARIATION {version} APPROACH: {approach}"
    return _pair(_cover_letter_system(inputs, country), user)


def build_personalization_messages(company_name: str, target_role: str, job_description: str) -> Messages:
    user = f"""
Company: {company_name}
Position: {target_role}

Based on this job posting, suggest 2-3 specific details about {company_name} that could be naturally incorporated into a cover letter to show research and genuine interest:

{job_description}

Focus on:
1. Company mission, values, or recent achievements
2. Industry challenges they're addressing
3. Growth opportunities or initiatives mentioned

Provide specific, actionable suggestions for personalization.
"""
    return _pair(
        "You are a company research expert. Help personalize cover letters with specific, relevant "
        "details about companies and their culture.",
        user,
    )
