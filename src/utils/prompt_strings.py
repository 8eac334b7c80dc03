class PromptStrings:
    ARTICLE_ENHANCEMENT = """Tu es un journaliste professionnel et analyste expert sur Madagascar. Tu dois rédiger un article ORIGINAL et ANALYTIQUE basé sur cette information source.

**INFORMATION SOURCE:**
- Titre original: "{original_title}"
- Résumé: "{original_summary}"
- Source: {source_name}
- Catégorie: {category} ({category_context})

**TEXTE SOURCE:**
{source_text}

**INSTRUCTIONS STRICTES:**

1. **TITRE CAPTIVANT** (max 80 caractères):
   - Accrocheur, qui donne envie de lire
   - Évite le clickbait mais soit percutant
   - Utilise des verbes d'action

2. **RÉSUMÉ** (2-3 phrases, max 200 caractères):
   - Synthèse claire et impactante
   - Les informations essentielles

3. **CONTENU DE L'ARTICLE** (300-400 mots):
   - NE COPIE PAS le contenu source, RÉÉCRIS entièrement
   - Structure en paragraphes clairs
   - **Mets en gras** (avec **texte**) les idées importantes
   - Ajoute du CONTEXTE et de l'ANALYSE sur Madagascar
   - Reste FACTUEL et OBJECTIF, n'invente aucun chiffre
   - Cite la source originale à la fin

4. **TAGS** (5 mots-clés pertinents)

5. **FIABILITÉ**:
   - reliability_score: entier de 0 à 100
   - reliability_label: "verified", "likely", "unverified" ou "disputed"
   - fact_check_notes: ce qui est confirmé, ce qui reste à vérifier

**FORMAT DE RÉPONSE (JSON):**
{{
  "title": "Titre captivant ici",
  "summary": "Résumé percutant ici",
  "content": "Contenu de l'article...",
  "tags": ["tag1", "tag2", "tag3", "tag4", "tag5"],
  "reliability_score": 70,
  "reliability_label": "likely",
  "fact_check_notes": "Notes de vérification"
}}

IMPORTANT: Réponds UNIQUEMENT avec le JSON."""

    BASIC_CONTENT = """**{original_title}**

{original_summary}

Cette information provient de **{source_name}**. Pour plus de détails et l'analyse complète, consultez la source originale.

*Note: Cet article est une synthèse de l'information publiée par {source_name}.*"""
