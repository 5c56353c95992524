JUDGE_PROMPT = """You are an expert recruitment assistant. Score how well the candidate fits the job on a 0–1 scale,
where 1.0 is perfect alignment. Weigh skills, years of experience, tools, education and the stated
qualifications and responsibilities.
Return JSON: {{"score": <0..1>, "justification": "<5-6 lines naming the decisive factors, positive and negative>"}}

CANDIDATE PROFILE:
{candidate_profile}

JOB DESCRIPTION:
{job_description}

COMPANY INFORMATION:
{company_info}
"""
