"""Artifact conventions: type -> directory, suffix and required headers."""

CONVENTIONS = {
    "component": {
        "directory": "components",
        "default_extension": ".js",
        "extensions": [".js", ".jsx", ".ts", ".tsx"],
    },
    "style": {
        "directory": "components",
        "default_extension": ".css",
        "extensions": [".css"],
    },
    "test": {
        "directory": "components/__tests__",
        "default_extension": ".test.js",
        "extensions": [".test.js", ".test.jsx", ".spec.js", ".spec.jsx"],
    },
}

# Prepended by the generator when component code does not import React.
FRAMEWORK_IMPORT_MARKER = "import React"
FRAMEWORK_IMPORT_HEADER = "import React, { useState } from 'react';"

# Added by the materializer to test files that lack a harness import.
TEST_HARNESS_MARKER = "@testing-library/react"
TEST_HARNESS_IMPORT = (
    "import { render, screen, fireEvent } from '@testing-library/react';"
)
