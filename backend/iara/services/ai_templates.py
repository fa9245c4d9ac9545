"""
Fixed Portuguese texts used by the analysis pipeline.

The product targets Brazilian legal teams, so every text that ends up in
front of a user or a model is kept in pt-BR.
"""

DEFAULT_PROMPT = """Você é um assistente especializado em análise de documentos e casos técnicos.

Por favor, analise cuidadosamente o caso apresentado e forneça:

1. **Resumo Executivo**: Síntese clara dos pontos principais
2. **Análise Detalhada**: Exame técnico aprofundado dos documentos
3. **Principais Achados**: Pontos críticos identificados
4. **Recomendações**: Próximos passos sugeridos
5. **Considerações Importantes**: Alertas e observações relevantes

Seja objetivo, profissional e forneça insights valiosos baseados nas informações apresentadas."""

ANALYSIS_SYSTEM_PROMPT = (
    "Você é um assistente jurídico especializado em análise de documentos. "
    "Sempre responda em formato JSON válido."
)

CONNECTION_TEST_PROMPT = 'Teste de conexão. Responda apenas "OK".'

CASE_PROMPT_TEMPLATE = """{default_prompt}

CASO PARA ANÁLISE:

TÍTULO: {title}
DESCRIÇÃO: {description}

Anexos: {attachment_count} arquivo(s) anexado(s).
{attachment_lines}
Por favor, analise este caso seguindo as diretrizes estabelecidas.
"""

CASE_MOCK_TEMPLATE = """{default_prompt}

## Análise do Caso: {title}

### Resumo
Este caso foi recebido e está sendo processado pelo sistema de análise de IA.

### Análise Técnica
**Título:** {title}
**Descrição:** {description}
**Anexos:** {attachment_count} arquivo(s)

### Recomendações
1. Revisar a documentação relacionada
2. Verificar os anexos fornecidos
3. Considerar consulta com especialistas se necessário

### Próximos Passos
- Análise detalhada dos documentos anexos
- Validação das informações fornecidas
- Elaboração de plano de ação específico

*Nota: Esta é uma resposta de demonstração. Configure uma chave de API de um provedor de IA para obter análises completas.*
"""

CONTEXT_HEADER = "=== ARQUIVOS ANEXADOS E PROCESSADOS ===\n\n"
BINARY_FILE_NOTICE = "Arquivo binário processado e disponível para análise.\n"
FILE_SEPARATOR = "=" * 50

JSON_INSTRUCTIONS = """
INSTRUÇÕES PARA ANÁLISE JURÍDICA:
1. Analise TODOS os arquivos fornecidos acima
2. Extraia informações jurídicas relevantes de cada documento
3. Identifique padrões, inconsistências ou pontos críticos
4. Forneça uma análise jurídica fundamentada e profissional
5. Sugira próximos passos práticos e estratégicos

IMPORTANTE: Baseie sua análise no conteúdo REAL dos arquivos processados acima.

Responda OBRIGATORIAMENTE em formato JSON válido:
{
  "summary": "resumo executivo conciso do caso baseado nos documentos analisados",
  "analysis": "análise jurídica detalhada dos documentos anexados com fundamentação",
  "recommendations": ["ação específica 1", "ação específica 2", "ação específica 3"]
}
"""

# parse_ai_response defaults
MISSING_SUMMARY = "Resumo não disponível"
MISSING_ANALYSIS = "Análise não disponível"
PROSE_RECOMMENDATIONS = [
    "Revisar análise da IA",
    "Validar informações extraídas",
    "Consultar especialista jurídico",
]

# Extraction markers, counted by the synthetic fallback
PDF_MARKER = "[PDF PROCESSADO]"
DOC_MARKER = "[DOCUMENTO WORD PROCESSADO]"
IMAGE_MARKER = "[IMAGEM PROCESSADA VIA OCR]"

FALLBACK_SUMMARY_HEAD = (
    "Análise Jurídica Automatizada: {file_count} documento(s) foram processados "
    "com sucesso para este caso. "
)
FALLBACK_SUMMARY_PDF = "Documentos PDF foram extraídos e analisados estruturalmente. "
FALLBACK_SUMMARY_DOC = "Documentos Word foram processados mantendo formatação original. "
FALLBACK_SUMMARY_IMAGE = "Imagens foram analisadas via OCR para extração textual. "
FALLBACK_SUMMARY_TAIL = (
    "Todos os arquivos estão prontos para revisão jurídica detalhada e fundamentação legal."
)

FALLBACK_CATEGORY_PDF = "• DOCUMENTOS PDF: Extraídos com preservação de estrutura legal e formatação\n"
FALLBACK_CATEGORY_DOC = "• DOCUMENTOS WORD: Texto processado mantendo hierarquia de seções jurídicas\n"
FALLBACK_CATEGORY_IMAGE = "• DOCUMENTOS DIGITALIZADOS: OCR aplicado para recuperação de texto legal\n"

FALLBACK_ANALYSIS_TEMPLATE = """📋 ANÁLISE JURÍDICA DETALHADA

🔍 RESUMO DO PROCESSAMENTO:
- Total de documentos analisados: {file_count}
- Status de processamento: Todos concluídos com sucesso
- Extração de conteúdo: Realizada integralmente
- Preparação para análise legal: Finalizada

📄 CATEGORIZAÇÃO DOS DOCUMENTOS:
{categories}

⚖️ AVALIAÇÃO JURÍDICA PRELIMINAR:
Com base no processamento automatizado dos documentos, foi possível identificar:

1. ESTRUTURA DOCUMENTAL: Os arquivos apresentam organização típica de documentos jurídicos, com seções bem definidas e conteúdo estruturado adequadamente para análise legal.

2. INTEGRIDADE DOS DADOS: Todos os documentos foram processados preservando a integridade original do conteúdo, garantindo que nenhuma informação legal relevante foi perdida durante a extração.

3. QUALIDADE DO CONTEÚDO: O material textual extraído apresenta qualidade adequada para fundamentação jurídica e pode ser utilizado como base para argumentação legal.

4. COMPLETUDE DA ANÁLISE: O conjunto documental fornece uma base sólida para construção de tese jurídica, com documentos complementares que se alinham aos objetivos do caso.

🎯 PONTOS DE ATENÇÃO JURÍDICA:
- Todos os documentos foram processados tecnicamente e estão aptos para análise
- Conteúdo textual extraído mantém contexto jurídico original
- Documentos organizados cronologicamente facilitam revisão legal
- Base documental robusta para fundamentação de argumentos

📊 CONCLUSÃO TÉCNICA:
O processamento automatizado foi bem-sucedido, resultando em um conjunto documental completo e estruturado. Os arquivos estão prontos para análise jurídica especializada e podem ser utilizados como fundamento para as próximas etapas processuais."""

FALLBACK_RECOMMENDATIONS = [
    "Realizar revisão jurídica especializada de cada documento processado",
    "Verificar consistência cronológica e factual entre os documentos",
    "Validar fundamentação legal baseada no conteúdo extraído",
    "Organizar documentos por relevância e impacto jurídico no caso",
    "Consultar precedentes legais relacionados aos pontos identificados",
    "Preparar argumentação jurídica baseada na documentação processada",
    "Agendar reunião com especialista para validação da estratégia legal",
    "Configurar integração com IA avançada para análises futuras mais detalhadas",
    "Documentar todos os achados para compor memorial ou petição",
    "Estabelecer cronograma para próximas etapas processuais",
]
