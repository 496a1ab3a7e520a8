"""QuizGenius: AI generated and AI graded knowledge checks from lesson files."""
