"""Prompt text and fixed user-facing messages for the retrieval pipeline."""

from models.search_result import RequestHints, SearchResult

DENIED_TOKEN = "DENIED"
NOT_FOUND_TOKEN = "NOT_FOUND"
VALID_TOKEN = "VALID"

INSTITUTION = "VinUni"

TOPICS = (
    "admissions, scholarships, awards, application procedures, required documents, courses, "
    "curriculum design, faculty, staff, research, research funding, majors, minors, double majors, "
    "interdisciplinary programs, students, enrollment statistics, student demographics, campus life, "
    "student engagement, student satisfaction, tuition fees, payment plans, financial aid, grants, "
    "fellowships, assistantships, exchange programs, study abroad opportunities, internships, "
    "job placement, co-op programs, career services, resume building, alumni relations, networking "
    "events, student organizations, clubs, societies, honor societies, housing, dormitories, "
    "off-campus housing, mental health counseling, psychological services, wellness programs, "
    "disability and accessibility services, academic accommodations, international student support, "
    "immigration advising, language learning services, orientation programs, welcome weeks, "
    "mentorship programs, tutoring services, academic advising, course registration, transfer "
    "credits, online learning, hybrid courses, learning management systems (LMS), educational "
    "technology, classroom technology, computer labs, Wi-Fi access, IT support, library resources, "
    "digital libraries, archives, study rooms, academic journals, laboratories, research centers, "
    "innovation hubs, incubators, startup support, intellectual property services, patents, "
    "university rankings, accreditations, recognitions, institutional partnerships, university "
    "governance, administration, student government, code of conduct, campus safety, emergency "
    "procedures, security services, sustainability initiatives, recycling programs, green buildings, "
    "campus events, lectures, workshops, conferences, student festivals, cultural celebrations, "
    "sports and athletics, varsity teams, intramural sports, fitness centers, recreation programs, "
    "graduate and postgraduate programs, thesis and dissertation support, honors programs, "
    "continuing education, lifelong learning, certificate programs, community outreach, "
    "volunteering opportunities, civic engagement, multicultural affairs, diversity and inclusion "
    "programs, climate surveys, university history, traditions, mascots, university merchandise, "
    "bookstores, lost and found, and campus maps"
)

TOPIC_PROMPT = f"""
These are the topics that are related to {INSTITUTION} that you are allowed to answer.
- University-related topics include: {TOPICS}, etc.
- Questions asking about specific individuals (e.g., faculty, staff, researchers, or students) in relation to their roles or involvement at {INSTITUTION} ARE allowed.
"""

GROUNDING_INSTRUCTION = f"""
You are an AI assistant restricted to answering questions under all these conditions.

**RESPONSE CONDITIONS**
1. You MUST ONLY answer if the question is related to {INSTITUTION} or university-related topics.
   - University-related topics include: {TOPICS}, etc.
   - Questions asking about specific individuals (e.g., faculty, staff, researchers, or students) in relation to their roles or involvement at {INSTITUTION} ARE allowed.

2. If the question is NOT related to {INSTITUTION} or university topics, respond with exactly: {DENIED_TOKEN}

3. If the documents do not contain the answer to the question, respond with exactly: {NOT_FOUND_TOKEN}

**ANSWER SOURCE CONDITIONS**
- You must ONLY use the content provided in the documents below.

**IMPORTANT**
- You may NEVER answer using your own general knowledge.
- You may NEVER infer or guess the answer if it is not explicitly in the documents.

Now, process the user question strictly under these rules.
"""

KEYWORD_EXTRACTION_PROMPT = """You are a keyword extraction assistant. Extract the most important keywords from the user's query that would be useful for searching academic/university policy documents. Return ONLY a JSON array of keywords, maximum 5 keywords. Do not include common words like "what", "how", "where", "the", "a", "an", etc. Focus on nouns, proper nouns, and important terms.

Example:
User: "What are the requirements for the robotics minor?"
Response: ["robotics", "minor", "requirements"]

User: "How do I apply for financial aid?"
Response: ["financial aid", "application", "apply"]

User: {query}
Response:"""

# User-facing messages
DENIED_MESSAGE = (
    f"I'm sorry, but I can only assist with questions related to {INSTITUTION}-related topics. "
    "Please ask questions about admissions, scholarships, courses, faculty, research, campus life, "
    "or other university-related topics."
)
NOT_FOUND_MESSAGE = (
    f"I couldn't find specific information to answer your question in the available {INSTITUTION} "
    f"documents. Please try rephrasing your question or ask about other {INSTITUTION}-related topics."
)
NOTHING_FOUND_MESSAGE = (
    f"I couldn't find any relevant information in the {INSTITUTION} documents for your query. "
    "This could mean:\n\n"
    "1. The information might not be available in our indexed documents\n"
    "2. Try rephrasing your question with different keywords\n"
    "3. Your question might be too specific or too broad\n\n"
    f"Please try rephrasing your search query or ask about other {INSTITUTION}-related topics such "
    "as admissions, courses, policies, or campus life."
)
GENERATION_ERROR_MESSAGE = (
    "An unexpected error has occurred. Please refresh the page, delete this chat or try again later!"
)
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred during the search. Please try again later."


def build_classification_prompt(query: str) -> str:
    return f"""{TOPIC_PROMPT}

USER QUESTION: {query}

Respond with only "{VALID_TOKEN}" if the question is related to {INSTITUTION} or university topics as defined in the instructions, or "{DENIED_TOKEN}" if it's not related."""


def build_keyword_prompt(query: str) -> str:
    return KEYWORD_EXTRACTION_PROMPT.format(query=query)


def format_evidence(evidence: tuple[SearchResult, ...]) -> str:
    return "\n\n".join(
        f"Document {index}:\nTitle: {result.title}\nURL: {result.url}\nContent: {result.content}\n---"
        for index, result in enumerate(evidence, start=1)
    )


def format_hints(hints: RequestHints | None) -> str:
    if hints is None or hints.is_empty:
        return ""
    return (
        "About the origin of user's request:\n"
        f"- lat: {hints.latitude}\n"
        f"- lon: {hints.longitude}\n"
        f"- city: {hints.city}\n"
        f"- country: {hints.country}\n"
    )


def build_synthesis_prompt(
    query: str, evidence: tuple[SearchResult, ...], hints: RequestHints | None = None
) -> str:
    origin = format_hints(hints)
    origin_block = f"\n{origin}" if origin else ""
    return f"""Based on the following documents from {INSTITUTION} sources, answer the user's question. {GROUNDING_INSTRUCTION}
DOCUMENTS:
{format_evidence(evidence)}
{origin_block}
USER QUESTION: {query}

Please provide a comprehensive answer based solely on the information in the documents above."""
