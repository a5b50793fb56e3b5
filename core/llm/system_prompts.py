DIVISION_SYSTEM_PROMPT = "You are an expert in organizational analysis and job market trends."

DIVISION_USER_TEMPLATE = """
Company Name: {company_name}

Job Description:
{description}

Your task is to:
1. Identify the most likely internal division or business unit at the company responsible for this job.
2. Use context from the job description and any publicly available knowledge about the company.
3. If no clear division can be identified, leave the division value as an empty string.

Return a JSON object with:
- division: the identified division
- reasoning: a short justification
- confidence: a value between 0 and 100

Do not include any explanation or extra text outside of the JSON object.
"""

HIERARCHY_SYSTEM_PROMPT = "You are an expert in organizational research and data extraction."

HIERARCHY_USER_TEMPLATE = """
Company Name: {company_name}
Division: {division}

Job Description:
{description}

Public search results about the company's leadership:
{search_results}

Extract the organizational hierarchy for this division from the search results.

Rules
- Only include people who are explicitly named in the search results. Never invent names.
- Only include names and job titles. No emails, phone numbers, or personal details.
- Order people from highest to lowest rank.
- Return an empty org_hierarchy list when no named people are found.
"""
