"""
quizcore - question type configuration and grading engine.

Question types bind a UI template to a scoring rule. Tests may override a
type's title, rule and availability; answers are graded by counting
mistakes with a metric and turning the count into points with a formula.
"""

__version__ = "1.0.0"
