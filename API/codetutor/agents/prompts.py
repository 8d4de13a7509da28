"""Prompt construction for every request kind.

Every builder is pure: it maps an ``AnalysisRequest`` onto prompt text plus the
generation settings the model call needs. Nothing here performs I/O.
"""
from __future__ import annotations

from dataclasses import dataclass

from codetutor.core.errors import InvalidLanguage
from codetutor.data.languages import SupportedLanguage, display_name
from codetutor.schemas.analysis import AnalysisRequest, Difficulty, InputKind, RequestKind

NO_OUTPUT_NOTE = "[No direct output produced by this example]"
FOLLOW_UP_EXCERPT_LENGTH = 500


@dataclass(frozen=True)
class PromptSpec:
    request_kind: RequestKind
    text: str
    temperature: float
    response_json: bool


def difficulty_guidance(language_name: str, difficulty: Difficulty | None) -> str:
    if difficulty == Difficulty.EASY:
        return (
            f"Provide only raw, runnable {language_name} code. Focus on basic syntax and a single, "
            "fundamental aspect of the concept, minimal logic, very short and concise."
        )
    if difficulty == Difficulty.HARD:
        return (
            f"Provide only raw, runnable {language_name} code. Involve more advanced features, combine the "
            "concept with other related ideas, introduce a slightly more complex problem-solving scenario, "
            "or utilize data structures beyond simple lists/arrays. Can be longer and more detailed."
        )
    return (
        f"Provide only raw, runnable {language_name} code. Incorporate common patterns, perhaps simple "
        "conditional logic or loops, demonstrates practical application of the concept, moderate length."
    )


def _explanation_prompt(request: AnalysisRequest, language_name: str) -> PromptSpec:
    if request.input_kind == InputKind.CONCEPT:
        concept = request.source_text.strip()
        text = (
            "You are an expert programming tutor. A user wants to understand a specific programming concept.\n"
            f"The programming language context is {language_name}.\n"
            f'The concept the user wants to understand is: "{concept}"\n\n'
            f'Write a comprehensive explanation of "{concept}" within the context of {language_name}.\n'
            "- Begin with a concise, high-level overview of the core ideas.\n"
            "- Then detail the concept's functionality, typical implementation patterns and underlying logic.\n"
            "- Trace how a program using this concept typically executes.\n"
            "- Describe how data is transformed or managed when the concept is applied.\n"
            "Cover potential nuances, keep it easy for a learner to follow, and use multiple paragraphs as needed.\n"
            "Respond with plain text only. Do NOT use JSON.\n"
        )
        return PromptSpec(RequestKind.EXPLANATION, text, 0.45, False)

    text = (
        f"You are an expert programming tutor. Analyze the following {language_name} code.\n"
        "The user's primary goal is to understand the main programming concepts demonstrated in THEIR SUBMITTED CODE.\n\n"
        "Write a comprehensive and detailed explanation of the main programming concept(s) in the code.\n"
        "- Begin with a concise, high-level overview of the core concepts or topics the code uses.\n"
        "- Then meticulously detail the code's functionality, structure and logic.\n"
        "- Explicitly trace the execution flow of the code, step by step.\n"
        "- Describe how data is transformed throughout the code's operation.\n"
        "Tailor the explanation to this code, keep it easy for a learner to understand, "
        "and use multiple paragraphs if necessary to be thorough.\n\n"
        f"User's {language_name} Code:\n"
        f"```{request.language.value}\n{request.source_text}\n```\n\n"
        "Respond with plain text only. Do NOT use JSON.\n"
    )
    return PromptSpec(RequestKind.EXPLANATION, text, 0.4, False)


def _example_prompt(request: AnalysisRequest, language_name: str) -> PromptSpec:
    difficulty = request.difficulty or Difficulty.INTERMEDIATE
    text = (
        "You are an expert programming tutor.\n"
        f'Concept explanation:\n"""\n{request.explanation}\n"""\n'
        f'Language: {language_name}. Requested difficulty: "{difficulty.value}".\n'
        f'Guidance for "{difficulty.value}": {difficulty_guidance(language_name, difficulty)}\n\n'
        'Provide ONLY a JSON object with keys: "exampleCode", "exampleCodeOutput".\n'
        f'- "exampleCode": Self-contained {language_name} code illustrating the explained concept at '
        f'"{difficulty.value}" level. It must differ from any code the user submitted and MUST be only pure, '
        "raw, runnable code without HTML, markdown or other formatting.\n"
        f'- "exampleCodeOutput": The exact expected output if the code were executed. If none, use "{NO_OUTPUT_NOTE}".\n'
        "Respond ONLY with the valid JSON object. Ensure the JSON is well-formed.\n"
    )
    return PromptSpec(RequestKind.EXAMPLE, text, 0.6, True)


def _practice_prompt(request: AnalysisRequest, language_name: str) -> PromptSpec:
    difficulty = request.difficulty or Difficulty.INTERMEDIATE
    text = (
        "You are an expert programming tutor.\n"
        f'Concept explanation:\n"""\n{request.explanation}\n"""\n'
        f'Language: {language_name}. Requested difficulty: "{difficulty.value}".\n\n'
        'Provide ONLY a JSON object with keys: "practiceQuestion", "instructions".\n'
        f'- "practiceQuestion": A "{difficulty.value}" programming question about the explained concept '
        f"that a learner can solve in {language_name}.\n"
        '- "instructions": Step-by-step instructions on how to approach and solve the practiceQuestion, '
        "as a multi-line string with one clearly articulated step per line. Scale the number of steps to the "
        "complexity of the material: 3-5 concise steps for a short, simple concept, 5-10+ steps for longer "
        "or more complex material.\n"
        "Respond ONLY with the valid JSON object. Ensure the JSON is well-formed.\n"
    )
    return PromptSpec(RequestKind.PRACTICE, text, 0.5, True)


def _solution_check_prompt(request: AnalysisRequest, language_name: str) -> PromptSpec:
    text = (
        "You are an expert programming tutor. The user is attempting to solve a practice question.\n"
        f"The programming language is {language_name}.\n"
        f'The topic being practiced is: "{request.explanation}"\n'
        f'The practice question was: "{request.practice_question}"\n\n'
        "The user was GIVEN THE FOLLOWING STEP-BY-STEP INSTRUCTIONS to solve this practice question:\n"
        "--- INSTRUCTIONS START ---\n"
        f"{request.instructions}\n"
        "--- INSTRUCTIONS END ---\n\n"
        "Here is the user's submitted code:\n"
        f"```{request.language.value}\n{request.user_code}\n```\n\n"
        "Determine whether the user's code CORRECTLY AND COMPLETELY implements each of the instructions.\n"
        'Provide your analysis as JSON with the exact keys "predictedOutput", "feedback", "isCorrect" (boolean) '
        'and "assessmentStatus" (one of "correct", "partially_correct", "incorrect", "syntax_error", "unrelated").\n'
        '- "predictedOutput": The exact predicted output if the code were executed. If there is no visible '
        'output or the code errors, say so clearly (e.g. "[No direct output]" or "[Error: Division by zero]").\n'
        '- "isCorrect": true ONLY IF the code fully implements ALL instructions and solves the problem.\n'
        '- "feedback": Constructive, encouraging feedback. When incorrect, explain which instructions were '
        "not followed or what is missing, and suggest improvements.\n"
        "Respond ONLY with the valid JSON object, without any surrounding text.\n"
    )
    return PromptSpec(RequestKind.SOLUTION_CHECK, text, 0.3, True)


def _follow_up_prompt(request: AnalysisRequest, language_name: str) -> PromptSpec:
    context_type = "the user's code snippet" if request.input_kind == InputKind.CODE else "the user's concept"
    history = "\n".join(
        f"{'User' if turn.role == 'user' else 'Tutor'}: {turn.content}" for turn in request.chat_history
    )
    text = (
        "You are an expert programming tutor acting as a helpful AI assistant.\n"
        "The user is asking a follow-up question related to a topic you previously explained.\n\n"
        "Context:\n"
        f"- Programming Language: {language_name}\n"
        f"- Original Input Type: {context_type}\n"
        f"- Original User Input:\n```\n{request.source_text}\n```\n"
        f'- Your Previous Explanation (key points): "{request.explanation[:FOLLOW_UP_EXCERPT_LENGTH]}..."\n'
        f'  (The full explanation was: "{request.explanation}")\n'
    )
    if history:
        text += f"- Conversation so far:\n{history}\n"
    text += (
        f'\nUser\'s Follow-up Question: "{request.question}"\n\n'
        "Answer the follow-up question directly, clearly and comprehensively, keeping the context above in mind.\n"
        "Your answer should be plain text, suitable for direct display. Do not use JSON.\n"
        "Be concise but thorough. If the question is ambiguous, give the most helpful interpretation.\n"
    )
    return PromptSpec(RequestKind.FOLLOW_UP, text, 0.55, False)


def _more_instructions_prompt(request: AnalysisRequest, language_name: str) -> PromptSpec:
    shown = "\n".join(f"{i + 1}. {step}" for i, step in enumerate(request.displayed_instructions)) or "(none yet)"
    next_level = request.instruction_level + 1
    text = (
        "You are an expert programming tutor giving progressively more detailed hints.\n"
        f"Language: {language_name}.\n"
        f'Practice question: "{request.practice_question}"\n\n'
        f"Instructions already shown to the learner (level {request.instruction_level}):\n{shown}\n\n"
        f"Provide level {next_level}: break the remaining work into smaller, more concrete steps that do not "
        "repeat what was already shown. Do not reveal the full solution code.\n"
        'Respond ONLY with a JSON object with keys "instructions" (array of strings, one step each), '
        f'"levelNumber" (the integer {next_level}) and "hasMoreLevels" (boolean, false when further '
        "detail would amount to giving away the solution).\n"
    )
    return PromptSpec(RequestKind.MORE_INSTRUCTIONS, text, 0.4, True)


def _elaboration_prompt(request: AnalysisRequest, language_name: str) -> PromptSpec:
    level = max(1, request.elaboration_level)
    context_description = "their code submission" if request.input_kind == InputKind.CODE else "the concept they inquired about"
    if level == 1:
        length_guidance = (
            "Provide a concise additional explanation (1-2 short paragraphs or a few key bullet points) that "
            "clarifies the most important aspects of the ORIGINAL EXPLANATION."
        )
    else:
        length_guidance = (
            "Provide a more detailed and comprehensive additional explanation (2-3 well-developed paragraphs). "
            "Delve deeper into nuances, or offer a small illustrative analogy if highly relevant. "
            "Avoid simply repeating information."
        )
    text = (
        "You are an expert programming tutor.\n"
        f"The user has received the following explanation about a topic related to {context_description} "
        f"in {language_name}:\n\n"
        f'ORIGINAL EXPLANATION:\n"""\n{request.explanation}\n"""\n\n'
        f'ORIGINAL USER INPUT ({request.input_kind.value}):\n"""\n{request.source_text}\n"""\n\n'
        f"The user wants a more detailed explanation. This is elaboration request number {level}.\n"
        f"Instruction for this level of elaboration: {length_guidance}\n\n"
        "Expand and deepen what was already stated. Do not introduce entirely new topics.\n"
        "Respond with plain text formatted for readability. Do NOT use JSON.\n"
    )
    return PromptSpec(RequestKind.ELABORATION, text, round(0.5 + level * 0.05, 2), False)


_BUILDERS = {
    RequestKind.EXPLANATION: _explanation_prompt,
    RequestKind.EXAMPLE: _example_prompt,
    RequestKind.PRACTICE: _practice_prompt,
    RequestKind.SOLUTION_CHECK: _solution_check_prompt,
    RequestKind.FOLLOW_UP: _follow_up_prompt,
    RequestKind.MORE_INSTRUCTIONS: _more_instructions_prompt,
    RequestKind.ELABORATION: _elaboration_prompt,
}


def build_prompt(request: AnalysisRequest) -> PromptSpec:
    if request.language == SupportedLanguage.UNKNOWN:
        raise InvalidLanguage(f"Cannot build a {request.request_kind.value} prompt for an unknown language.")
    return _BUILDERS[request.request_kind](request, display_name(request.language))
