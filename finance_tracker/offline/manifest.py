"""
Default Asset Manifest

The fixed list of shell assets installed into every cache generation.
This is configuration: keep it in sync with the static assets the
application actually ships.
"""

DEFAULT_ASSET_MANIFEST = (
    "/",
    "/index.html",
    "/index.tsx",
    "/App.tsx",
    "/types.ts",
    "/components/Header.tsx",
    "/components/Navigation.tsx",
    "/components/Dashboard.tsx",
    "/components/ExpensesPage.tsx",
    "/components/IncomePage.tsx",
    "/components/CategoriesPage.tsx",
    "/components/Summary.tsx",
    "/components/ExpenseChart.tsx",
    "/components/ExpenseForm.tsx",
    "/components/ExpenseList.tsx",
    "/components/ExpenseItem.tsx",
    "/components/CategoryIcon.tsx",
    "/icon.svg",
    # Pinned third-party bundles
    "https://aistudiocdn.com/recharts@^3.3.0",
    "https://aistudiocdn.com/react@^19.2.0",
    "https://aistudiocdn.com/react@^19.2.0/",
    "https://aistudiocdn.com/react-dom@^19.2.0/",
    "https://aistudiocdn.com/@google/genai@^1.28.0",
    "https://cdn.tailwindcss.com",
)
