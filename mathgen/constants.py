"""Package-wide vocabulary, prompt text and demo assets."""

from typing import Any

# ---------------------------------------------------------------------------
# Slot vocabulary
# ---------------------------------------------------------------------------

SLOT_ORDER = ("topic", "difficulty", "format", "count", "details")
REQUIRED_SLOTS = ("topic", "difficulty", "format", "count")

DIFFICULTIES = ("elementary", "middle", "high")
FORMATS = ("free-response", "multiple-choice", "computation")
COUNT_MIN = 1
COUNT_MAX = 10

# Canonical topic key -> keywords. The longest matching keyword wins, so
# "三角関数" resolves to trigonometry rather than functions.
TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "functions": (
        "関数", "一次関数", "二次関数", "比例", "反比例", "グラフ",
        "function", "functions", "quadratic", "linear function", "parabola",
    ),
    "numbers_and_expressions": (
        "数と式", "式の計算", "因数分解", "展開", "平方根", "整数", "分数", "小数",
        "expression", "expressions", "factoring", "fraction", "fractions", "square root",
    ),
    "equations": (
        "方程式", "連立方程式", "二次方程式", "不等式",
        "equation", "equations", "quadratic equation", "inequality", "inequalities",
    ),
    "geometry": (
        "図形", "三角形", "四角形", "円", "面積", "体積", "角度", "相似", "合同",
        "geometry", "triangle", "rectangle", "circle", "area", "angle",
    ),
    "probability_statistics": (
        "確率", "統計", "データ", "場合の数", "平均", "回帰",
        "probability", "statistics", "data analysis", "regression",
    ),
    "calculus": (
        "微分", "積分", "極限", "微積分",
        "calculus", "derivative", "derivatives", "integral", "integrals", "limit",
    ),
    "sequences": (
        "数列", "等差数列", "等比数列", "漸化式",
        "sequence", "sequences", "series", "recurrence",
    ),
    "vectors": ("ベクトル", "vector", "vectors"),
    "trigonometry": (
        "三角関数", "三角比", "正弦", "余弦", "正接",
        "trigonometry", "trigonometric", "sine", "cosine",
    ),
}

TOPIC_LABELS: dict[str, str] = {
    "functions": "関数",
    "numbers_and_expressions": "数と式",
    "equations": "方程式",
    "geometry": "図形",
    "probability_statistics": "確率・統計",
    "calculus": "微分・積分",
    "sequences": "数列",
    "vectors": "ベクトル",
    "trigonometry": "三角関数",
}

DIFFICULTY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "elementary": ("小学生", "小学校", "小学", "elementary", "primary school", "primary"),
    "middle": ("中学生", "中学校", "中学", "middle school", "junior high", "middle"),
    "high": ("高校生", "高等学校", "高校", "high school", "senior high", "high"),
}

# Grade words that are recognisably a difficulty but outside the supported set.
UNSUPPORTED_DIFFICULTY_KEYWORDS = (
    "大学生", "大学", "大学院", "社会人", "幼稚園", "university", "college", "graduate",
)

DIFFICULTY_LABELS: dict[str, str] = {
    "elementary": "小学生",
    "middle": "中学生",
    "high": "高校生",
}

FORMAT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "free-response": (
        "記述式", "記述", "文章題", "free-response", "free response",
        "written", "open-ended", "open ended",
    ),
    "multiple-choice": (
        "選択式", "選択肢", "選択", "択一", "4択", "四択", "multiple-choice",
        "multiple choice", "choice",
    ),
    "computation": (
        "計算問題", "計算", "computation", "calculation", "compute", "drill",
    ),
}

FORMAT_LABELS: dict[str, str] = {
    "free-response": "記述式",
    "multiple-choice": "選択式",
    "computation": "計算問題",
}

COUNTING_WORDS = ("問", "題", "個", "つ")
COUNTING_WORDS_EN = ("problems", "problem", "questions", "question")

KANJI_DIGITS: dict[str, int] = {
    "〇": 0, "零": 0, "一": 1, "二": 2, "三": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}
KANJI_UNITS: dict[str, int] = {"十": 10, "百": 100}

ENGLISH_NUMBERS: dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

# Explicit deferral: the user lets the system choose.
DEFERRAL_WORDS = (
    "おまかせ", "お任せ", "任せ", "指定なし", "なんでも", "何でも", "どれでも",
    "どちらでも", "any", "anything", "whatever", "default", "don't care",
)

DEFAULTS: dict[str, Any] = {
    "topic": "functions",
    "difficulty": "high",
    "format": "free-response",
    "count": 1,
}

# ---------------------------------------------------------------------------
# Conversation text
# ---------------------------------------------------------------------------

SLOT_QUESTIONS: dict[str, str] = {
    "topic": "どの分野の問題を作成しますか？（例：関数、図形、確率・統計、数列）",
    "difficulty": "難易度（小学生、中学生、高校生）を教えてください。",
    "format": "問題の形式（記述式、選択式、計算問題）を教えてください。",
    "count": "問題数を教えてください（1〜10問）。",
    "details": "その他、問題に関する要望があれば教えてください。",
}

FALLBACK_QUESTION = SLOT_QUESTIONS["difficulty"]

VALIDATION_MESSAGES: dict[str, str] = {
    "count": "問題数は1〜10問の範囲内で指定してください。",
    "difficulty": "難易度は「小学生」「中学生」「高校生」のいずれかで指定してください。",
    "format": "問題の形式は「記述式」「選択式」「計算問題」のいずれかで指定してください。",
    "topic": "分野を認識できませんでした。",
}

COMPLETE_MESSAGE = "必要な情報が揃いました。問題を作成します。"

MULTI_COUNT_PREFIX = "以下の{count}問の問題に答えなさい。"

# ---------------------------------------------------------------------------
# Markup
# ---------------------------------------------------------------------------

DOCUMENT_TEMPLATE = r"""\documentclass[dvipdfmx,a4paper]{jsarticle}
\usepackage{amsmath,amssymb}
\usepackage{tikz}
\usepackage{pgfplots}
\usepgfplotslibrary{fillbetween}
\usetikzlibrary{calc,angles,quotes,intersections}
\pgfplotsset{compat=1.18}
\usepackage{float}
\begin{document}

\section*{問題}
{{PROBLEM_TEXT}}

{{FIGURE_CODE}}

\section*{解答}
{{ANSWER_TEXT}}

\section*{解説}
{{EXPLANATION_TEXT}}

\end{document}
"""

FILL_COLOR_SUBSTITUTIONS: dict[str, str] = {"#f0f0f0": "blue!20"}
STROKE_COLOR_SUBSTITUTIONS: dict[str, str] = {"#000": "black", "#000000": "black"}

# ---------------------------------------------------------------------------
# Demo
# ---------------------------------------------------------------------------

DEMO_SPEC: dict[str, Any] = {
    "topic": "functions",
    "difficulty": "high",
    "format": "free-response",
    "count": 1,
    "details": "二次関数の頂点とx軸との交点を求める問題",
}

DEMO_VISUALIZATION: dict[str, Any] = {
    "type": "function_graph",
    "functions": [{"expression": "x^2 - 4*x + 3", "domain": [-1, 5]}],
}

__all__ = [
    "SLOT_ORDER",
    "REQUIRED_SLOTS",
    "DIFFICULTIES",
    "FORMATS",
    "COUNT_MIN",
    "COUNT_MAX",
    "TOPIC_KEYWORDS",
    "TOPIC_LABELS",
    "DIFFICULTY_KEYWORDS",
    "UNSUPPORTED_DIFFICULTY_KEYWORDS",
    "DIFFICULTY_LABELS",
    "FORMAT_KEYWORDS",
    "FORMAT_LABELS",
    "COUNTING_WORDS",
    "COUNTING_WORDS_EN",
    "KANJI_DIGITS",
    "KANJI_UNITS",
    "ENGLISH_NUMBERS",
    "DEFERRAL_WORDS",
    "DEFAULTS",
    "SLOT_QUESTIONS",
    "FALLBACK_QUESTION",
    "VALIDATION_MESSAGES",
    "COMPLETE_MESSAGE",
    "MULTI_COUNT_PREFIX",
    "DOCUMENT_TEMPLATE",
    "FILL_COLOR_SUBSTITUTIONS",
    "STROKE_COLOR_SUBSTITUTIONS",
    "DEMO_SPEC",
    "DEMO_VISUALIZATION",
]
