from __future__ import annotations
import logging

from .ai_service import AIService
from .schemas import MaterialParams, MaterialResult

logger = logging.getLogger(__name__)


def render_placeholder_material(params: MaterialParams) -> str:
	"""Deterministic Markdown handout used whenever the model cannot be reached."""
	points = params.knowledge_points
	first = points[0] if len(points) > 0 else "Knowledge point 1"
	second = points[1] if len(points) > 1 else "Knowledge point 2"
	numbered = "\n".join(f"{i}. {p}" for i, p in enumerate(points, start=1))
	return f"""# {params.title}

## Course information
- Subject: {params.subject}
- Grade: {params.grade}
- Difficulty: {params.difficulty}/5

## Overview of knowledge points

This handout covers the following core knowledge points:
{numbered}

## Part 1: {first}

### 1.1 Basic concepts

{first} refers to... (concept explanation)

### 1.2 Key properties

1. Property one: ...
2. Property two: ...
3. Property three: ...

### 1.3 Worked examples

Example 1: ...
Example 2: ...

## Part 2: {second}

### 2.1 Basic concepts

{second} refers to... (concept explanation)

### 2.2 Key properties

1. Property one: ...
2. Property two: ...
3. Property three: ...

### 2.3 Worked examples

Example 1: ...
Example 2: ...

## Part 3: Connections and extensions

### 3.1 How the knowledge points relate

The relationship between {first} and {second}...

### 3.2 Further reading

1. Extension topic one: ...
2. Extension topic two: ...

## Part 4: Typical problems

### Problem 1

Question: ...
Analysis: ...
Answer: ...

### Problem 2

Question: ...
Analysis: ...
Answer: ...

## Part 5: Questions for reflection

1. Question one: ...
2. Question two: ...
3. Question three: ...

## References

1. Reference one
2. Reference two
3. Reference three

Note: this handout is a generated placeholder; adapt it to your teaching needs before use."""


async def generate_material(params: MaterialParams, ai: AIService) -> MaterialResult:
	"""Generate material with the model, falling back to the local placeholder on any failure."""
	ai_generated = False
	if ai.configured:
		try:
			content = await ai.generate_material(params)
			ai_generated = True
		except Exception:
			logger.exception("AI material generation failed, falling back to placeholder content")
			content = render_placeholder_material(params)
	else:
		logger.warning("AI service not configured, using placeholder content for %r", params.title)
		content = render_placeholder_material(params)
	metadata = {**params.model_dump(by_alias=True), "aiGenerated": ai_generated}
	return MaterialResult(content=content, metadata=metadata)
