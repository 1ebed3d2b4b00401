"""
Response schemas handed to the model so plan and analysis replies come back
as strict JSON. Written in the OpenAPI-subset dialect Gemini accepts; other
providers receive the same schema inside the system prompt.
"""

PREPARATION_PLAN_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "identifiedColumns": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "List of column headers identified from the data.",
        },
        "steps": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {
                        "type": "STRING",
                        "description": "A short title for the preparation step, e.g., 'Handle Missing Values'.",
                    },
                    "description": {
                        "type": "STRING",
                        "description": "A detailed explanation of the step, e.g., 'Fill missing values in the Revenue column with 0'.",
                    },
                },
                "required": ["title", "description"],
            },
            "description": "A list of proposed data cleaning and preparation steps.",
        },
        "analysisSuggestions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "A list of potential analyses that can be performed on this data, e.g., 'Analyze sales trend over time'.",
        },
    },
    "required": ["identifiedColumns", "steps", "analysisSuggestions"],
}

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "analysisTitle": {"type": "STRING"},
        "dataTransformationSummary": {"type": "STRING"},
        "keyInsights": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "metric": {"type": "STRING"},
                    "value": {"type": "STRING"},
                    "trend": {"type": "STRING"},
                },
                "required": ["metric", "value", "trend"],
            },
        },
        "quantitativeAnalysis": {"type": "STRING", "description": "A summary in Markdown format."},
        "qualitativeAnalysis": {"type": "STRING", "description": "A summary in Markdown format."},
        "recommendations": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "area": {"type": "STRING"},
                    "recommendation": {"type": "STRING"},
                },
                "required": ["area", "recommendation"],
            },
        },
        "chartData": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "value": {"type": "NUMBER"},
                },
                "required": ["name", "value"],
            },
        },
        "chartType": {"type": "STRING", "enum": ["bar", "line"]},
    },
    "required": [
        "analysisTitle",
        "dataTransformationSummary",
        "keyInsights",
        "quantitativeAnalysis",
        "qualitativeAnalysis",
        "recommendations",
        "chartData",
        "chartType",
    ],
}
