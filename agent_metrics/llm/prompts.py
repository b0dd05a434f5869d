"""Fixed prompt text for the annotate and score stages."""

ANNOTATE_INSTRUCTION = (
    "Transcribe the following conversation into a JSON array. The JSON array "
    "should contain items with each entry being a JSON object with one "
    "property, property name being 'agent' or 'customer' and value as the "
    "text of the conversation."
)

SCORING_RUBRIC = """\
Given a call center transcript, rate the agent's active listening skills. \
Active listening is focusing on a speaker, understanding their message, and \
responding thoughtfully. It involves being present, showing interest, noticing \
non-verbal cues, asking open-ended questions, paraphrasing and reflecting back, \
listening to understand and not to respond, and withholding judgment and advice. \
For example:

Customer: Hi, I have a problem with my internet connection. Agent: I'm sorry to \
hear that. That must be frustrating. (paraphrasing and empathizing) Customer: \
Yes, it is. I need the internet for my work. Agent: I understand. Can you tell \
me more about the problem? (asking open-ended questions) Customer: It started \
two weeks ago and it happens almost every day. Agent: I see. So it's not \
constant but frequent. (reflecting back) Customer: Exactly. Agent: Okay, thank \
you. I'm going to run some tests on your line. Please stay on the line. \
(listening to understand and respond)

The possible ratings are:

Excellent: The agent uses all or most of the techniques consistently and effectively.
Good: The agent uses some of the techniques frequently and appropriately.
Fair: The agent uses a few of the techniques occasionally or inconsistently.
Poor: The agent uses none or very few of the techniques.

The output should be a JSON object with one property named "activeListening" \
with one of the ratings. For example:

{"activeListening": "Excellent"}

Now do for this transcript:

"""


def build_annotate_prompt(transcript: str) -> str:
    """Instruction followed by the raw transcript, verbatim."""
    return f"{ANNOTATE_INSTRUCTION}\n\n{transcript}"


def build_score_prompt(annotated_transcription: str) -> str:
    """Rubric followed by the annotated transcript, verbatim."""
    return SCORING_RUBRIC + annotated_transcription
